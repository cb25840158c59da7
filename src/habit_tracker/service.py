from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from habit_tracker.db import CheckIn, Database, Task, User
from habit_tracker.schedule import (
    PRESET_CUSTOM,
    SCHEDULE_PRESETS,
    is_due,
    is_valid_days_of_week,
)
from habit_tracker.streak import (
    DEFAULT_LOOKBACK_DAYS,
    DayOutcome,
    StreakSummary,
    day_outcomes,
    is_day_successful,
    summarize_streaks,
)
from habit_tracker.time_utils import last_n_days

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 255
DAILY_TARGET_MIN = 1
DAILY_TARGET_MAX = 100


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400


class ForbiddenError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


@dataclass(frozen=True)
class TodayTask:
    id: int
    title: str
    icon: str | None
    is_completed: bool
    check_in_id: int | None


@dataclass(frozen=True)
class TodayView:
    date: date
    tasks: list[TodayTask]
    completed_count: int
    total_count: int
    daily_target: int
    successful: bool


@dataclass(frozen=True)
class InsightsView:
    days: list[DayOutcome]
    daily_target: int
    current_streak: int
    best_streak: int
    current_streak_capped: bool


def signup(db: Database, email: str, now: datetime) -> User:
    normalized = (email or "").strip().lower()
    local, _, domain = normalized.partition("@")
    if not local or "." not in domain:
        raise ValidationError("Invalid email address")
    if db.get_user_by_email(normalized) is not None:
        raise ConflictError("An account with this email already exists")
    user = db.create_user(normalized, secrets.token_urlsafe(32), now)
    logger.info("user created id=%s", user.id)
    return user


def update_daily_target(db: Database, user: User, daily_target: int) -> User:
    if isinstance(daily_target, bool) or not isinstance(daily_target, int):
        raise ValidationError("Daily target must be a whole number")
    if not DAILY_TARGET_MIN <= daily_target <= DAILY_TARGET_MAX:
        raise ValidationError(f"Daily target must be between {DAILY_TARGET_MIN} and {DAILY_TARGET_MAX}")
    updated = db.update_daily_target(user.id, daily_target)
    if updated is None:
        raise NotFoundError("User not found")
    return updated


def _clean_title(title: str) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Title is required")
    if len(cleaned) > TITLE_MAX_LENGTH:
        raise ValidationError("Title is too long")
    return cleaned


def _check_schedule(preset: str, days_of_week: list[int]) -> None:
    if preset not in SCHEDULE_PRESETS:
        raise ValidationError(f"Invalid schedule: {preset}")
    if preset != PRESET_CUSTOM:
        return
    if not days_of_week:
        raise ValidationError("A custom schedule needs at least one day")
    if not is_valid_days_of_week(days_of_week):
        raise ValidationError("Invalid days selected")


def _owned_task(db: Database, user: User, task_id: int) -> Task:
    task = db.get_task(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    if task.user_id != user.id:
        raise ForbiddenError("No access to this task")
    return task


def create_task(
    db: Database,
    user: User,
    title: str,
    schedule_preset: str,
    days_of_week: list[int] | None,
    now: datetime,
    icon: str | None = None,
) -> Task:
    cleaned = _clean_title(title)
    days = list(days_of_week or [])
    _check_schedule(schedule_preset, days)
    task = db.add_task(
        user_id=user.id,
        title=cleaned,
        schedule_preset=schedule_preset,
        days_of_week=days if schedule_preset == PRESET_CUSTOM else [],
        now=now,
        icon=icon,
    )
    logger.info("task created id=%s user=%s preset=%s", task.id, user.id, schedule_preset)
    return task


def update_task(db: Database, user: User, task_id: int, changes: dict[str, Any]) -> Task:
    existing = _owned_task(db, user, task_id)
    updates: dict[str, Any] = {}
    if changes.get("title") is not None:
        updates["title"] = _clean_title(changes["title"])
    if changes.get("schedule_preset") is not None:
        updates["schedule_preset"] = changes["schedule_preset"]
    if changes.get("days_of_week") is not None:
        updates["days_of_week"] = list(changes["days_of_week"])
    if changes.get("is_active") is not None:
        updates["is_active"] = bool(changes["is_active"])
    if changes.get("icon") is not None:
        updates["icon"] = changes["icon"]

    final_preset = updates.get("schedule_preset", existing.schedule_preset)
    final_days = updates.get("days_of_week", existing.days_of_week)
    _check_schedule(final_preset, final_days)
    if final_preset != PRESET_CUSTOM and final_days:
        updates["days_of_week"] = []

    task = db.update_task(task_id, updates)
    if task is None:
        raise NotFoundError("Task not found")
    logger.info("task updated id=%s fields=%s", task_id, sorted(updates))
    return task


def delete_task(db: Database, user: User, task_id: int) -> None:
    _owned_task(db, user, task_id)
    db.delete_task(user.id, task_id)
    logger.info("task deleted id=%s user=%s", task_id, user.id)


def check_in(db: Database, user: User, task_id: int, day: date, now: datetime) -> CheckIn:
    task = _owned_task(db, user, task_id)
    if not task.is_active:
        raise ValidationError("Task is not active")
    if not is_due(task.rule, day):
        raise ValidationError("Task is not scheduled for this date")
    created = db.add_check_in(user.id, task_id, day, now)
    if created is None:
        raise ConflictError("Check-in already exists for this date")
    logger.info("check-in task=%s date=%s", task_id, day.isoformat())
    return created


def undo_check_in(db: Database, user: User, task_id: int, day: date) -> None:
    existing = db.get_check_in(task_id, day)
    if existing is None:
        raise NotFoundError("Check-in not found")
    if existing.user_id != user.id:
        raise ForbiddenError("No access to this check-in")
    db.delete_check_in(task_id, day)
    logger.info("check-in removed task=%s date=%s", task_id, day.isoformat())


def compute_streaks(
    db: Database,
    user: User,
    today: date,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> StreakSummary:
    tasks = [t.to_scheduled() for t in db.list_tasks(user.id, include_inactive=True)]
    facts = [c.to_fact() for c in db.list_check_ins(user.id)]
    return summarize_streaks(tasks, facts, user.daily_target, today, lookback_days)


def compute_today(db: Database, user: User, today: date) -> TodayView:
    tasks = [t for t in db.list_tasks(user.id) if is_due(t.rule, today)]
    done = {c.task_id: c.id for c in db.list_check_ins(user.id, start=today, end=today)}
    items = [
        TodayTask(
            id=t.id,
            title=t.title,
            icon=t.icon,
            is_completed=t.id in done,
            check_in_id=done.get(t.id),
        )
        for t in tasks
    ]
    completed = sum(1 for item in items if item.is_completed)
    return TodayView(
        date=today,
        tasks=items,
        completed_count=completed,
        total_count=len(items),
        daily_target=user.daily_target,
        successful=is_day_successful(completed, len(items), user.daily_target),
    )


def compute_insights(
    db: Database,
    user: User,
    today: date,
    days: int = 7,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> InsightsView:
    window = last_n_days(today, days)
    active = [t.to_scheduled() for t in db.list_tasks(user.id)]
    facts = [c.to_fact() for c in db.list_check_ins_on(user.id, window)]
    streaks = compute_streaks(db, user, today, lookback_days)
    return InsightsView(
        days=day_outcomes(active, facts, user.daily_target, window),
        daily_target=user.daily_target,
        current_streak=streaks.current,
        best_streak=streaks.best,
        current_streak_capped=streaks.current_capped,
    )
