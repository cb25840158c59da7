from __future__ import annotations

from habit_tracker.db_models import CheckIn, Task, User
from habit_tracker.db_repo import BaseDatabase, CheckInMixin, TaskMixin, UserMixin


class Database(UserMixin, TaskMixin, CheckInMixin, BaseDatabase):
    pass


__all__ = ["Database", "User", "Task", "CheckIn"]
