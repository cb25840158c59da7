from __future__ import annotations

import os
from pathlib import Path

import pytest

from habit_tracker.config import load_settings

ENV_KEYS = (
    "DATABASE_PATH",
    "TZ",
    "API_HOST",
    "API_PORT",
    "STREAK_LOOKBACK_DAYS",
    "RATE_LIMITING_ENABLED",
    "RATE_LIMIT_CONFIG",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # the .env loader writes straight into os.environ
    clean = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
    monkeypatch.setattr(os, "environ", clean)


def test_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / ".env")
    assert settings.tz == "Europe/Amsterdam"
    assert settings.api_port == 8000
    assert settings.streak_lookback_days == 365
    assert settings.rate_limiting_enabled is True
    assert settings.database_path == Path("./data/habits.db")


def test_env_file_does_not_override_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local overrides\n"
        "STREAK_LOOKBACK_DAYS=30\n"
        "API_PORT='9001'\n"
        "RATE_LIMITING_ENABLED=false\n"
    )
    monkeypatch.setenv("API_PORT", "9100")
    settings = load_settings(env_file)
    assert settings.streak_lookback_days == 30
    assert settings.api_port == 9100
    assert settings.rate_limiting_enabled is False


@pytest.mark.parametrize("raw", ["abc", "0", "-5"])
def test_bad_lookback_falls_back(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("STREAK_LOOKBACK_DAYS", raw)
    assert load_settings(tmp_path / ".env").streak_lookback_days == 365
