from __future__ import annotations

import sqlite3
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from habit_tracker.db import Database
from habit_tracker.schedule import Custom, Everyday


def _dt(y: int, m: int, d: int, h: int = 10, minute: int = 0) -> datetime:
    return datetime(y, m, d, h, minute, tzinfo=ZoneInfo("Europe/Amsterdam"))


def _db_with_user(tmp_path: Path) -> tuple[Database, int]:
    db = Database(tmp_path / "habits.db")
    user = db.create_user("ana@example.com", "tok-1", _dt(2024, 1, 1))
    return db, user.id


class TestUserDB:
    def test_create_and_lookup(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        user = db.get_user(user_id)
        assert user is not None
        assert user.daily_target == 1
        assert db.get_user_by_email("ana@example.com") == user
        assert db.get_user_by_token("tok-1") == user
        assert db.get_user_by_token("nope") is None

    def test_email_is_unique(self, tmp_path: Path) -> None:
        db, _ = _db_with_user(tmp_path)
        with pytest.raises(sqlite3.IntegrityError):
            db.create_user("ana@example.com", "tok-2", _dt(2024, 1, 2))

    def test_update_daily_target(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        updated = db.update_daily_target(user_id, 3)
        assert updated is not None
        assert updated.daily_target == 3
        assert db.update_daily_target(999, 3) is None


class TestTaskDB:
    def test_add_task_roundtrip(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        task = db.add_task(user_id, "Read", "CUSTOM", [4, 0], _dt(2024, 1, 1), icon="book")
        assert task.days_of_week == [0, 4]
        assert task.is_active is True
        assert task.icon == "book"
        assert task.rule == Custom(frozenset({0, 4}))
        assert db.get_task(task.id) == task

    def test_list_tasks_active_first_newest_first(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        old = db.add_task(user_id, "Old", "ALL_WEEK", [], _dt(2024, 1, 1))
        new = db.add_task(user_id, "New", "ALL_WEEK", [], _dt(2024, 1, 2))
        archived = db.add_task(user_id, "Archived", "WEEKEND", [], _dt(2024, 1, 3))
        db.update_task(archived.id, {"is_active": False})

        assert [t.title for t in db.list_tasks(user_id)] == ["New", "Old"]
        assert [t.id for t in db.list_tasks(user_id, include_inactive=True)] == [new.id, old.id, archived.id]

    def test_update_task_fields(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        task = db.add_task(user_id, "Walk", "CUSTOM", [1], _dt(2024, 1, 1))
        updated = db.update_task(task.id, {"title": "Long walk", "schedule_preset": "ALL_WEEK", "days_of_week": []})
        assert updated is not None
        assert updated.title == "Long walk"
        assert updated.rule == Everyday()
        assert db.update_task(999, {"title": "x"}) is None

    def test_invalid_preset_rejected_by_schema(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        with pytest.raises(sqlite3.IntegrityError):
            db.add_task(user_id, "Bad", "MONTHLY", [], _dt(2024, 1, 1))

    def test_delete_task_cascades_check_ins(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        task = db.add_task(user_id, "Stretch", "ALL_WEEK", [], _dt(2024, 1, 1))
        db.add_check_in(user_id, task.id, date(2024, 1, 1), _dt(2024, 1, 1))
        assert db.delete_task(user_id, task.id) is True
        assert db.list_check_ins(user_id) == []
        assert db.delete_task(user_id, task.id) is False


class TestCheckInDB:
    def test_add_check_in_unique_per_task_and_date(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        task = db.add_task(user_id, "Water", "ALL_WEEK", [], _dt(2024, 1, 1))
        first = db.add_check_in(user_id, task.id, date(2024, 1, 1), _dt(2024, 1, 1))
        assert first is not None
        assert first.status == "DONE"
        assert first.date == date(2024, 1, 1)
        assert db.add_check_in(user_id, task.id, date(2024, 1, 1), _dt(2024, 1, 1, 11)) is None

    def test_list_check_ins_bounded(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        task = db.add_task(user_id, "Water", "ALL_WEEK", [], _dt(2024, 1, 1))
        for day in (1, 2, 3, 4):
            db.add_check_in(user_id, task.id, date(2024, 1, day), _dt(2024, 1, day))

        assert len(db.list_check_ins(user_id)) == 4
        bounded = db.list_check_ins(user_id, start=date(2024, 1, 2), end=date(2024, 1, 3))
        assert [c.date.day for c in bounded] == [2, 3]
        picked = db.list_check_ins_on(user_id, [date(2024, 1, 4), date(2024, 1, 1), date(2024, 2, 1)])
        assert [c.date.day for c in picked] == [1, 4]
        assert db.list_check_ins_on(user_id, []) == []

    def test_delete_check_in(self, tmp_path: Path) -> None:
        db, user_id = _db_with_user(tmp_path)
        task = db.add_task(user_id, "Water", "ALL_WEEK", [], _dt(2024, 1, 1))
        db.add_check_in(user_id, task.id, date(2024, 1, 1), _dt(2024, 1, 1))
        assert db.get_check_in(task.id, date(2024, 1, 1)) is not None
        assert db.delete_check_in(task.id, date(2024, 1, 1)) is True
        assert db.get_check_in(task.id, date(2024, 1, 1)) is None
        assert db.delete_check_in(task.id, date(2024, 1, 1)) is False


def test_migrations_are_idempotent(tmp_path: Path) -> None:
    Database(tmp_path / "habits.db")
    db = Database(tmp_path / "habits.db")
    with db._connect() as conn:
        versions = [row["version"] for row in conn.execute("SELECT version FROM schema_migrations ORDER BY version")]
    assert versions == [1, 2]
