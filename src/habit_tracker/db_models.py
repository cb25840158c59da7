from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from habit_tracker.schedule import RecurrenceRule, rule_from_preset
from habit_tracker.streak import CheckInFact, ScheduledTask


@dataclass(frozen=True)
class User:
    id: int
    email: str
    api_token: str
    daily_target: int
    created_at: datetime


@dataclass(frozen=True)
class Task:
    id: int
    user_id: int
    title: str
    icon: str | None
    schedule_preset: str
    days_of_week: list[int]
    is_active: bool
    created_at: datetime

    @property
    def rule(self) -> RecurrenceRule:
        return rule_from_preset(self.schedule_preset, self.days_of_week)

    def to_scheduled(self) -> ScheduledTask:
        return ScheduledTask(id=self.id, rule=self.rule, active=self.is_active)


@dataclass(frozen=True)
class CheckIn:
    id: int
    user_id: int
    task_id: int
    date: date
    status: str
    created_at: datetime

    def to_fact(self) -> CheckInFact:
        return CheckInFact(task_id=self.task_id, day=self.date)
