from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import Any, Protocol

from habit_tracker.db_converters import _row_to_task
from habit_tracker.db_models import Task

TASK_UPDATABLE_COLUMNS = ("title", "icon", "schedule_preset", "days_of_week", "is_active")


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...


class TaskMixin:
    def add_task(
        self: DbProtocol,
        user_id: int,
        title: str,
        schedule_preset: str,
        days_of_week: list[int],
        now: datetime,
        icon: str | None = None,
    ) -> Task:
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO tasks(user_id, title, icon, schedule_preset, days_of_week, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, 1, ?)
                """,
                (user_id, title, icon, schedule_preset, json.dumps(sorted(days_of_week)), now.isoformat()),
            )
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (cur.lastrowid,)).fetchone()
        assert row is not None
        return _row_to_task(row)

    def get_task(self: DbProtocol, task_id: int) -> Task | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row) if row else None

    def list_tasks(self: DbProtocol, user_id: int, include_inactive: bool = False) -> list[Task]:
        query = "SELECT * FROM tasks WHERE user_id = ?"
        if not include_inactive:
            query += " AND is_active = 1"
        # active first, newest first
        query += " ORDER BY is_active DESC, created_at DESC, id DESC"
        with self._connect() as conn:
            rows = conn.execute(query, (user_id,)).fetchall()
        return [_row_to_task(r) for r in rows]

    def update_task(self: DbProtocol, task_id: int, updates: dict[str, Any]) -> Task | None:
        assignments: list[str] = []
        params: list[Any] = []
        for column in TASK_UPDATABLE_COLUMNS:
            if column not in updates:
                continue
            value = updates[column]
            if column == "days_of_week":
                value = json.dumps(sorted(value))
            elif column == "is_active":
                value = 1 if value else 0
            assignments.append(f"{column} = ?")
            params.append(value)

        with self._connect() as conn:
            if assignments:
                conn.execute(f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?", (*params, task_id))
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row) if row else None

    def delete_task(self: DbProtocol, user_id: int, task_id: int) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id))
        return cur.rowcount > 0
