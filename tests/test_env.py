import os

import pytest

from melomood import env


@pytest.fixture(autouse=True)
def isolated_environ(monkeypatch):
    monkeypatch.setattr(os, "environ", dict(os.environ))


def test_load_env_parses_pairs_and_aliases(tmp_path):
    for key in ("ANTHROPIC_API_KEY", "MELOMOOD_LATITUDE", "MELOMOOD_LONGITUDE", "EXTRA_FLAG"):
        os.environ.pop(key, None)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\n"
        "anthropic api key='sk-test'\n"
        "lat: 40.7, lon: -74.0\n"
        "extra flag=\"yes\"\n"
    )

    values = env.load_env(env_file)

    assert values == {
        "ANTHROPIC_API_KEY": "sk-test",
        "MELOMOOD_LATITUDE": "40.7",
        "MELOMOOD_LONGITUDE": "-74.0",
        "EXTRA_FLAG": "yes",
    }
    assert os.environ["ANTHROPIC_API_KEY"] == "sk-test"
    assert env.optional_float("MELOMOOD_LONGITUDE") == -74.0


def test_existing_environment_wins(tmp_path, monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "from-shell")
    env_file = tmp_path / ".env"
    env_file.write_text("ANTHROPIC_API_KEY=from-file\n")
    env.load_env(env_file)
    assert os.environ["ANTHROPIC_API_KEY"] == "from-shell"


def test_missing_file_returns_empty(tmp_path):
    assert env.load_env(tmp_path / "missing.env") == {}


def test_require_reports_missing(monkeypatch):
    monkeypatch.delenv("MELOMOOD_TEST_KEY", raising=False)
    with pytest.raises(RuntimeError, match="MELOMOOD_TEST_KEY"):
        env.require(["MELOMOOD_TEST_KEY"])
    monkeypatch.setenv("MELOMOOD_TEST_KEY", "value")
    assert env.require(["MELOMOOD_TEST_KEY"]) == {"MELOMOOD_TEST_KEY": "value"}


def test_optional_float(monkeypatch):
    monkeypatch.delenv("MELOMOOD_LATITUDE", raising=False)
    assert env.optional_float("MELOMOOD_LATITUDE") is None
    monkeypatch.setenv("MELOMOOD_LATITUDE", "north")
    with pytest.raises(RuntimeError):
        env.optional_float("MELOMOOD_LATITUDE")
