"""Environment helpers for provider credentials and local settings."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, Optional

ALIAS_KEY_MAP = {
    "claude": "ANTHROPIC_API_KEY",
    "claude api key": "ANTHROPIC_API_KEY",
    "claude_api_key": "ANTHROPIC_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "anthropic api key": "ANTHROPIC_API_KEY",
    "store": "MELOMOOD_STORE_PATH",
    "store path": "MELOMOOD_STORE_PATH",
    "feedback file": "MELOMOOD_STORE_PATH",
    "lat": "MELOMOOD_LATITUDE",
    "latitude": "MELOMOOD_LATITUDE",
    "lon": "MELOMOOD_LONGITUDE",
    "longitude": "MELOMOOD_LONGITUDE",
}


def load_env(path: Optional[Path] = None) -> Dict[str, str]:
    """Load settings from a .env file, returning the parsed mapping.

    Lines may be ``KEY=VALUE`` or comma separated ``alias: value`` pairs.
    Values already present in ``os.environ`` win; parsed values are exported
    with ``setdefault`` so downstream code can read them from the environment.
    """

    env_path = Path(path) if path else Path(__file__).resolve().parent.parent / ".env"
    values: Dict[str, str] = {}
    if not env_path.exists():
        return values

    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            key, raw_value = line.split("=", 1)
            _store(values, key, raw_value)
            continue

        segments = [segment.strip() for segment in line.split(",") if segment.strip()]
        for segment in segments:
            if ":" not in segment:
                continue
            key, raw_value = segment.split(":", 1)
            _store(values, key, raw_value)
    return values


def require(keys: Iterable[str]) -> Dict[str, str]:
    """Ensure the provided keys exist in the environment, raising if missing."""

    names = list(keys)
    missing = [name for name in names if not os.environ.get(name)]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")
    return {name: os.environ[name] for name in names}


def optional_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as error:
        raise RuntimeError(f"Environment variable {name} must be numeric, got {raw!r}") from error


def _store(values: Dict[str, str], key: str, raw_value: str) -> None:
    parsed_key = _normalize_key(key)
    if not parsed_key:
        return
    value = raw_value.strip().strip('"').strip("'")
    values[parsed_key] = value
    os.environ.setdefault(parsed_key, value)


def _normalize_key(key: str) -> Optional[str]:
    lowered = key.lower().strip()
    if not lowered:
        return None
    if lowered in ALIAS_KEY_MAP:
        return ALIAS_KEY_MAP[lowered]
    return lowered.replace(" ", "_").upper()
