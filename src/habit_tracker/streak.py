from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Sequence

from habit_tracker.schedule import RecurrenceRule, is_due
from habit_tracker.time_utils import date_range

DEFAULT_LOOKBACK_DAYS = 365


@dataclass(frozen=True)
class ScheduledTask:
    id: int
    rule: RecurrenceRule
    active: bool = True


@dataclass(frozen=True)
class CheckInFact:
    task_id: int
    day: date


@dataclass(frozen=True)
class DayOutcome:
    day: date
    scheduled_count: int
    completed_count: int
    successful: bool

    @property
    def excluded(self) -> bool:
        return self.scheduled_count == 0


@dataclass(frozen=True)
class CurrentStreak:
    days: int
    capped: bool


@dataclass(frozen=True)
class StreakSummary:
    current: int
    best: int
    current_capped: bool


def _check_target(daily_target: int) -> None:
    if isinstance(daily_target, bool) or not isinstance(daily_target, int) or daily_target < 1:
        raise ValueError(f"daily_target must be a positive integer, got {daily_target!r}")


def is_day_successful(completed_count: int, scheduled_count: int, daily_target: int) -> bool:
    """Apply the daily target capped at what is achievable that day.

    A day with nothing scheduled returns False; callers must treat it as
    excluded rather than as a failure.
    """
    if completed_count < 0 or scheduled_count < 0:
        raise ValueError(f"Counts must be non-negative: completed={completed_count}, scheduled={scheduled_count}")
    _check_target(daily_target)
    if scheduled_count == 0:
        return False
    effective_target = min(daily_target, scheduled_count)
    return completed_count >= effective_target


def scheduled_count(tasks: Iterable[ScheduledTask], day: date) -> int:
    return sum(1 for task in tasks if is_due(task.rule, day))


def completed_by_date(check_ins: Iterable[CheckInFact]) -> dict[date, int]:
    return dict(Counter(c.day for c in check_ins))


def day_outcome(tasks: Sequence[ScheduledTask], completed: dict[date, int], daily_target: int, day: date) -> DayOutcome:
    scheduled = scheduled_count(tasks, day)
    done = completed.get(day, 0)
    return DayOutcome(
        day=day,
        scheduled_count=scheduled,
        completed_count=done,
        successful=is_day_successful(done, scheduled, daily_target),
    )


def day_outcomes(
    tasks: Iterable[ScheduledTask],
    check_ins: Iterable[CheckInFact],
    daily_target: int,
    days: Iterable[date],
) -> list[DayOutcome]:
    task_list = list(tasks)
    completed = completed_by_date(check_ins)
    return [day_outcome(task_list, completed, daily_target, d) for d in days]


def current_streak_detail(
    tasks: Iterable[ScheduledTask],
    check_ins: Iterable[CheckInFact],
    daily_target: int,
    today: date,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> CurrentStreak:
    """Walk backward from ``today`` over at most ``lookback_days`` dates.

    Only active tasks count toward what is scheduled. When the walk runs out
    of window without meeting a failure, ``capped`` is set and ``days`` is a
    lower bound.
    """
    if lookback_days < 1:
        raise ValueError(f"lookback_days must be at least 1, got {lookback_days}")
    _check_target(daily_target)
    active = [t for t in tasks if t.active]
    completed = completed_by_date(check_ins)

    streak = 0
    for offset in range(lookback_days):
        outcome = day_outcome(active, completed, daily_target, today - timedelta(days=offset))
        if outcome.excluded:
            continue
        if not outcome.successful:
            return CurrentStreak(days=streak, capped=False)
        streak += 1
    return CurrentStreak(days=streak, capped=streak > 0)


def current_streak(
    tasks: Iterable[ScheduledTask],
    check_ins: Iterable[CheckInFact],
    daily_target: int,
    today: date,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> int:
    return current_streak_detail(tasks, check_ins, daily_target, today, lookback_days).days


def best_streak(tasks: Iterable[ScheduledTask], check_ins: Iterable[CheckInFact], daily_target: int) -> int:
    """Longest run between the first and last check-in, archived tasks included."""
    _check_target(daily_target)
    all_tasks = list(tasks)
    completed = completed_by_date(check_ins)
    if not completed:
        return 0

    best = 0
    running = 0
    for day in date_range(min(completed), max(completed)):
        outcome = day_outcome(all_tasks, completed, daily_target, day)
        if outcome.excluded:
            continue
        if outcome.successful:
            running += 1
            best = max(best, running)
        else:
            running = 0
    return best


def summarize_streaks(
    tasks: Iterable[ScheduledTask],
    check_ins: Iterable[CheckInFact],
    daily_target: int,
    today: date,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> StreakSummary:
    task_list = list(tasks)
    facts = list(check_ins)
    current = current_streak_detail(task_list, facts, daily_target, today, lookback_days)
    best = best_streak(task_list, facts, daily_target)
    # the two walks use different task sets, so best can trail current
    return StreakSummary(current=current.days, best=max(best, current.days), current_capped=current.capped)
