from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Iterable, Protocol

from habit_tracker.db_converters import _row_to_check_in
from habit_tracker.db_models import CheckIn


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...


class CheckInMixin:
    def add_check_in(self: DbProtocol, user_id: int, task_id: int, day: date, now: datetime) -> CheckIn | None:
        """Insert a DONE check-in; returns None when one already exists for (task, day)."""
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT OR IGNORE INTO check_ins(user_id, task_id, date, status, created_at)
                VALUES (?, ?, ?, 'DONE', ?)
                """,
                (user_id, task_id, day.isoformat(), now.isoformat()),
            )
            if cur.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM check_ins WHERE id = ?", (cur.lastrowid,)).fetchone()
        assert row is not None
        return _row_to_check_in(row)

    def get_check_in(self: DbProtocol, task_id: int, day: date) -> CheckIn | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM check_ins WHERE task_id = ? AND date = ?",
                (task_id, day.isoformat()),
            ).fetchone()
        return _row_to_check_in(row) if row else None

    def delete_check_in(self: DbProtocol, task_id: int, day: date) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM check_ins WHERE task_id = ? AND date = ?",
                (task_id, day.isoformat()),
            )
        return cur.rowcount > 0

    def list_check_ins(
        self: DbProtocol,
        user_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> list[CheckIn]:
        query = "SELECT * FROM check_ins WHERE user_id = ?"
        params: list[object] = [user_id]
        if start is not None:
            query += " AND date >= ?"
            params.append(start.isoformat())
        if end is not None:
            query += " AND date <= ?"
            params.append(end.isoformat())
        query += " ORDER BY date ASC, id ASC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_check_in(r) for r in rows]

    def list_check_ins_on(self: DbProtocol, user_id: int, days: Iterable[date]) -> list[CheckIn]:
        keys = sorted({d.isoformat() for d in days})
        if not keys:
            return []
        placeholders = ", ".join("?" for _ in keys)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM check_ins WHERE user_id = ? AND date IN ({placeholders}) ORDER BY date ASC, id ASC",
                (user_id, *keys),
            ).fetchall()
        return [_row_to_check_in(r) for r in rows]
