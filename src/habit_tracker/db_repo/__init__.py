from .base import BaseDatabase
from .users import UserMixin
from .tasks import TaskMixin
from .checkins import CheckInMixin

__all__ = [
    "BaseDatabase",
    "UserMixin",
    "TaskMixin",
    "CheckInMixin",
]
