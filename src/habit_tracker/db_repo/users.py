from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Protocol

from habit_tracker.db_converters import _row_to_user
from habit_tracker.db_models import User

USER_COLUMNS = "id, email, api_token, daily_target, created_at"


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...


class UserMixin:
    def create_user(self: DbProtocol, email: str, api_token: str, now: datetime, daily_target: int = 1) -> User:
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO users(email, api_token, daily_target, created_at) VALUES (?, ?, ?, ?)",
                (email, api_token, daily_target, now.isoformat()),
            )
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (cur.lastrowid,)).fetchone()
        assert row is not None
        return _row_to_user(row)

    def get_user(self: DbProtocol, user_id: int) -> User | None:
        with self._connect() as conn:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row else None

    def get_user_by_email(self: DbProtocol, email: str) -> User | None:
        with self._connect() as conn:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE email = ?", (email,)).fetchone()
        return _row_to_user(row) if row else None

    def get_user_by_token(self: DbProtocol, api_token: str) -> User | None:
        with self._connect() as conn:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE api_token = ?", (api_token,)).fetchone()
        return _row_to_user(row) if row else None

    def update_daily_target(self: DbProtocol, user_id: int, daily_target: int) -> User | None:
        with self._connect() as conn:
            conn.execute("UPDATE users SET daily_target = ? WHERE id = ?", (daily_target, user_id))
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row else None
