from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo


DEFAULT_TZ = "Europe/Amsterdam"
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DateParseError(ValueError):
    pass


def now_local(tz_name: str = DEFAULT_TZ) -> datetime:
    return datetime.now(tz=ZoneInfo(tz_name))


def today_local(tz_name: str = DEFAULT_TZ) -> date:
    return now_local(tz_name).date()


def parse_date_str(raw: str) -> date:
    value = raw.strip() if isinstance(raw, str) else ""
    if not DATE_PATTERN.fullmatch(value):
        raise DateParseError(f"Invalid date {raw!r}, expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise DateParseError(f"Invalid date {raw!r}: {exc}") from exc


def weekday_of(day: date) -> int:
    """ISO weekday with Monday=0 .. Sunday=6."""
    if not isinstance(day, date) or isinstance(day, datetime):
        raise DateParseError(f"Expected a calendar date, got {day!r}")
    return day.weekday()


def date_range(start: date, end: date) -> list[date]:
    if start > end:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def last_n_days(today: date, n: int) -> list[date]:
    if n < 1:
        raise ValueError("n must be at least 1")
    return date_range(today - timedelta(days=n - 1), today)
