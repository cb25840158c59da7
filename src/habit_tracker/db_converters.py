from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime

from habit_tracker.db_models import CheckIn, Task, User


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        api_token=row["api_token"],
        daily_target=int(row["daily_target"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_task(row: sqlite3.Row) -> Task:
    days_raw = row["days_of_week"]
    days = json.loads(days_raw) if days_raw else []
    return Task(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        icon=row["icon"],
        schedule_preset=row["schedule_preset"],
        days_of_week=[int(d) for d in days],
        is_active=bool(row["is_active"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_check_in(row: sqlite3.Row) -> CheckIn:
    return CheckIn(
        id=row["id"],
        user_id=row["user_id"],
        task_id=row["task_id"],
        date=date.fromisoformat(row["date"]),
        status=row["status"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )
