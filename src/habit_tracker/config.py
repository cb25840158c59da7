from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from habit_tracker.streak import DEFAULT_LOOKBACK_DAYS
from habit_tracker.time_utils import DEFAULT_TZ


@dataclass(frozen=True)
class Settings:
    database_path: Path
    tz: str
    api_host: str
    api_port: int
    streak_lookback_days: int
    rate_limiting_enabled: bool
    rate_limit_config_path: Path
    log_level: str


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        raw = line.strip()
        if not raw or raw.startswith("#") or "=" not in raw:
            continue
        key, value = raw.split("=", maxsplit=1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_int(value: str | None, default: int, min_value: int = 1) -> int:
    try:
        parsed = int(value) if value is not None else default
    except ValueError:
        return default
    return parsed if parsed >= min_value else default


def load_settings(env_file: Path = Path(".env")) -> Settings:
    _load_env_file(env_file)

    return Settings(
        database_path=Path(os.getenv("DATABASE_PATH", "./data/habits.db")),
        tz=os.getenv("TZ", DEFAULT_TZ) or DEFAULT_TZ,
        api_host=os.getenv("API_HOST", "127.0.0.1"),
        api_port=_parse_int(os.getenv("API_PORT"), 8000),
        streak_lookback_days=_parse_int(os.getenv("STREAK_LOOKBACK_DAYS"), DEFAULT_LOOKBACK_DAYS),
        rate_limiting_enabled=_parse_bool(os.getenv("RATE_LIMITING_ENABLED"), default=True),
        rate_limit_config_path=Path(os.getenv("RATE_LIMIT_CONFIG", "./rate_limit.yaml")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
