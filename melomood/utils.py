"""Utility helpers shared by providers and the API layer."""
from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Tuple, Union
from urllib.parse import quote, quote_plus

from . import config
from .models import Platform, Song

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^,]*)?;base64,(?P<data>.*)$", re.DOTALL)
_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\}|\[.*?\])\s*```", re.DOTALL)


def split_image_payload(image: Union[str, bytes], default_mime: str = "image/jpeg") -> Tuple[str, str]:
    """Return ``(media_type, base64_data)`` for a data URL, raw base64 string or raw bytes."""

    if isinstance(image, (bytes, bytearray)):
        return default_mime, base64.b64encode(bytes(image)).decode("ascii")
    if not isinstance(image, str) or not image.strip():
        raise ValueError("Image payload must be non-empty bytes or a base64 string")

    payload = image.strip()
    mime = default_mime
    match = _DATA_URL.match(payload)
    if match:
        mime = match.group("mime") or default_mime
        payload = match.group("data")
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as error:
        raise ValueError("Image payload is not valid base64") from error
    return mime, payload


def extract_json(payload: str) -> Any:
    """Parse JSON from a model reply, tolerating code fences and surrounding prose."""

    match = _FENCED_JSON.search(payload)
    if match:
        payload = match.group(1)
    try:
        return json.loads(payload)
    except json.JSONDecodeError:
        start = payload.find("{")
        end = payload.rfind("}")
        if start != -1 and end != -1 and end > start:
            return json.loads(payload[start : end + 1])
        raise


def search_url(song: Song, platform: Union[Platform, str]) -> str:
    """Link to a search for ``song`` on the given streaming platform."""

    platform = Platform(platform)
    query = f"{song.title} {song.artist}"
    template = config.PLATFORM_SEARCH_URLS[platform.value]
    if platform is Platform.SPOTIFY:
        return template.format(query=quote(query))
    return template.format(query=quote_plus(query))
