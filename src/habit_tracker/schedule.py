from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Union

from habit_tracker.time_utils import weekday_of

PRESET_ALL_WEEK = "ALL_WEEK"
PRESET_WORKWEEK = "WORKWEEK"
PRESET_WEEKEND = "WEEKEND"
PRESET_CUSTOM = "CUSTOM"
SCHEDULE_PRESETS = (PRESET_ALL_WEEK, PRESET_WORKWEEK, PRESET_WEEKEND, PRESET_CUSTOM)

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
WORKWEEK_DAYS = frozenset({0, 1, 2, 3, 4})
WEEKEND_DAYS = frozenset({5, 6})


class ScheduleError(ValueError):
    pass


@dataclass(frozen=True)
class Everyday:
    pass


@dataclass(frozen=True)
class Weekdays:
    pass


@dataclass(frozen=True)
class Weekend:
    pass


@dataclass(frozen=True)
class Custom:
    days: frozenset[int]

    def __post_init__(self) -> None:
        if not is_valid_days_of_week(self.days):
            raise ScheduleError(f"Invalid custom days: {self.days!r}")
        object.__setattr__(self, "days", frozenset(self.days))


RecurrenceRule = Union[Everyday, Weekdays, Weekend, Custom]


def is_valid_days_of_week(days: Iterable[object]) -> bool:
    try:
        values = list(days)
    except TypeError:
        return False
    if not values:
        return False
    return all(isinstance(d, int) and not isinstance(d, bool) and 0 <= d <= 6 for d in values)


def is_due(rule: RecurrenceRule, day: date) -> bool:
    weekday = weekday_of(day)
    if isinstance(rule, Everyday):
        return True
    if isinstance(rule, Weekdays):
        return weekday in WORKWEEK_DAYS
    if isinstance(rule, Weekend):
        return weekday in WEEKEND_DAYS
    if isinstance(rule, Custom):
        return weekday in rule.days
    raise ScheduleError(f"Unknown recurrence rule: {rule!r}")


def rule_from_preset(preset: str, days_of_week: Iterable[int] | None = None) -> RecurrenceRule:
    if preset == PRESET_ALL_WEEK:
        return Everyday()
    if preset == PRESET_WORKWEEK:
        return Weekdays()
    if preset == PRESET_WEEKEND:
        return Weekend()
    if preset == PRESET_CUSTOM:
        return Custom(frozenset(days_of_week or ()))
    raise ScheduleError(f"Unknown schedule preset: {preset!r}")


def rule_to_preset(rule: RecurrenceRule) -> tuple[str, list[int]]:
    if isinstance(rule, Everyday):
        return PRESET_ALL_WEEK, []
    if isinstance(rule, Weekdays):
        return PRESET_WORKWEEK, []
    if isinstance(rule, Weekend):
        return PRESET_WEEKEND, []
    if isinstance(rule, Custom):
        return PRESET_CUSTOM, sorted(rule.days)
    raise ScheduleError(f"Unknown recurrence rule: {rule!r}")


def day_name(weekday: int) -> str:
    if not isinstance(weekday, int) or not 0 <= weekday <= 6:
        raise ScheduleError(f"Weekday out of range: {weekday!r}")
    return DAY_NAMES[weekday]


def schedule_label(rule: RecurrenceRule) -> str:
    if isinstance(rule, Everyday):
        return "Every day"
    if isinstance(rule, Weekdays):
        return "Weekdays (Mon-Fri)"
    if isinstance(rule, Weekend):
        return "Weekend (Sat-Sun)"
    if isinstance(rule, Custom):
        return ", ".join(day_name(d) for d in sorted(rule.days))
    raise ScheduleError(f"Unknown recurrence rule: {rule!r}")
