"""Ports - interfaces/protocols for external dependencies."""

from .task_repo import TaskRepository
from .user_repo import UserRepository
from .calendar_repo import CalendarRepository

__all__ = [
    "TaskRepository",
    "UserRepository",
    "CalendarRepository",
]
