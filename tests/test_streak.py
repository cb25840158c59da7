from __future__ import annotations

from datetime import date, timedelta

import pytest

from habit_tracker.schedule import Custom, Everyday, Weekdays, Weekend
from habit_tracker.streak import (
    CheckInFact,
    ScheduledTask,
    best_streak,
    current_streak,
    current_streak_detail,
    day_outcomes,
    is_day_successful,
    summarize_streaks,
)


def _facts(task_id: int, *days: str) -> list[CheckInFact]:
    return [CheckInFact(task_id=task_id, day=date.fromisoformat(d)) for d in days]


@pytest.mark.parametrize(
    "completed,scheduled,target,expected",
    [
        (2, 2, 3, True),  # fewer due than target, all done
        (1, 2, 3, False),  # fewer due than target, some done
        (3, 2, 1, True),  # more completions than scheduled
        (3, 3, 3, True),  # exactly meets target
        (0, 0, 1, False),  # nothing due; caller excludes the day
        (0, 1, 1, False),
    ],
)
def test_day_success_rule(completed: int, scheduled: int, target: int, expected: bool) -> None:
    assert is_day_successful(completed, scheduled, target) is expected


@pytest.mark.parametrize("completed,scheduled,target", [(-1, 2, 1), (1, -2, 1), (1, 2, 0), (1, 2, -3)])
def test_day_success_rejects_invalid_inputs(completed: int, scheduled: int, target: int) -> None:
    with pytest.raises(ValueError):
        is_day_successful(completed, scheduled, target)


def test_day_success_monotonic() -> None:
    for scheduled in range(1, 6):
        for target in range(1, 7):
            results = [is_day_successful(c, scheduled, target) for c in range(scheduled + 1)]
            assert results == sorted(results)
        for completed in range(scheduled + 1):
            results = [is_day_successful(completed, scheduled, t) for t in range(1, 8)]
            assert results == sorted(results, reverse=True)


def test_weekend_task_survives_weekdays() -> None:
    tasks = [ScheduledTask(id=1, rule=Weekend())]
    check_ins = _facts(1, "2024-01-06", "2024-01-07")
    # Monday after: Mon is excluded, Sat+Sun count, Fri..Mon before are excluded, Sun 2023-12-31 missed
    assert current_streak(tasks, check_ins, 1, date(2024, 1, 8)) == 2
    # Friday after: five excluded weekdays in a row do not break anything
    assert current_streak(tasks, check_ins, 1, date(2024, 1, 12)) == 2


def test_saturday_only_task_counts_the_following_monday() -> None:
    tasks = [ScheduledTask(id=1, rule=Custom(frozenset({5})))]
    check_ins = _facts(1, "2024-01-06")
    assert current_streak(tasks, check_ins, 1, date(2024, 1, 8)) == 1


def test_unfinished_today_ends_current_streak() -> None:
    tasks = [ScheduledTask(id=1, rule=Everyday())]
    check_ins = _facts(1, "2024-01-01", "2024-01-02")
    assert current_streak(tasks, check_ins, 1, date(2024, 1, 3)) == 0
    assert current_streak(tasks, check_ins, 1, date(2024, 1, 2)) == 2


def test_current_streak_ignores_inactive_tasks() -> None:
    tasks = [
        ScheduledTask(id=1, rule=Everyday()),
        ScheduledTask(id=2, rule=Everyday(), active=False),
    ]
    check_ins = _facts(1, "2024-01-01", "2024-01-02", "2024-01-03")
    assert current_streak(tasks, check_ins, 2, date(2024, 1, 3)) == 3


def test_effective_target_on_weekend() -> None:
    tasks = [
        ScheduledTask(id=1, rule=Everyday()),
        ScheduledTask(id=2, rule=Everyday()),
        ScheduledTask(id=3, rule=Weekdays()),
    ]
    # target 3, Saturday only has the two everyday tasks due
    check_ins = _facts(1, "2024-01-06") + _facts(2, "2024-01-06")
    assert current_streak(tasks, check_ins, 3, date(2024, 1, 6)) == 1


def test_lookback_cap_is_reported() -> None:
    tasks = [ScheduledTask(id=1, rule=Everyday())]
    today = date(2024, 3, 10)
    check_ins = [CheckInFact(task_id=1, day=today - timedelta(days=i)) for i in range(10)]

    capped = current_streak_detail(tasks, check_ins, 1, today, lookback_days=5)
    assert capped.days == 5
    assert capped.capped is True

    exact = current_streak_detail(tasks, check_ins, 1, today, lookback_days=30)
    assert exact.days == 10
    assert exact.capped is False


def test_lookback_must_be_positive() -> None:
    with pytest.raises(ValueError):
        current_streak([], [], 1, date(2024, 1, 1), lookback_days=0)


def test_best_streak_picks_longest_run() -> None:
    tasks = [ScheduledTask(id=1, rule=Everyday())]
    check_ins = _facts(1, "2024-01-01", "2024-01-02", "2024-01-03", "2024-01-05", "2024-01-06")
    assert best_streak(tasks, check_ins, 1) == 3


def test_best_streak_includes_archived_tasks() -> None:
    tasks = [
        ScheduledTask(id=1, rule=Weekend(), active=False),
        ScheduledTask(id=2, rule=Weekdays()),
    ]
    check_ins = _facts(1, "2024-01-06", "2024-01-07") + _facts(2, "2024-01-08")
    assert best_streak(tasks, check_ins, 1) == 3


def test_best_streak_skips_zero_scheduled_days() -> None:
    tasks = [ScheduledTask(id=1, rule=Custom(frozenset({0, 3})))]
    check_ins = _facts(1, "2024-01-01", "2024-01-04", "2024-01-08")
    assert best_streak(tasks, check_ins, 1) == 3


def test_empty_history() -> None:
    assert best_streak([], [], 1) == 0
    assert current_streak([], [], 1, date(2024, 1, 1)) == 0
    tasks = [ScheduledTask(id=1, rule=Everyday())]
    assert best_streak(tasks, [], 1) == 0
    assert current_streak(tasks, [], 1, date(2024, 1, 1)) == 0


def test_summary_keeps_best_at_least_current() -> None:
    tasks = [
        ScheduledTask(id=1, rule=Everyday()),
        ScheduledTask(id=2, rule=Everyday(), active=False),
    ]
    check_ins = _facts(1, "2024-01-01", "2024-01-02", "2024-01-03")
    assert best_streak(tasks, check_ins, 2) == 0
    summary = summarize_streaks(tasks, check_ins, 2, date(2024, 1, 3))
    assert summary.current == 3
    assert summary.best == 3


def test_summary_is_idempotent() -> None:
    tasks = [ScheduledTask(id=1, rule=Weekdays()), ScheduledTask(id=2, rule=Weekend())]
    check_ins = _facts(1, "2024-01-01", "2024-01-02", "2024-01-04") + _facts(2, "2024-01-06")
    first = summarize_streaks(tasks, check_ins, 1, date(2024, 1, 6))
    second = summarize_streaks(tasks, check_ins, 1, date(2024, 1, 6))
    assert first == second
    assert first.best >= first.current


def test_day_outcomes_mark_excluded_days() -> None:
    tasks = [ScheduledTask(id=1, rule=Weekend())]
    days = [date(2024, 1, 5), date(2024, 1, 6)]
    outcomes = day_outcomes(tasks, _facts(1, "2024-01-06"), 1, days)
    assert outcomes[0].excluded is True
    assert outcomes[0].successful is False
    assert outcomes[1].excluded is False
    assert outcomes[1].successful is True
    assert outcomes[1].completed_count == 1
