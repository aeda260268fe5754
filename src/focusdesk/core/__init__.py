"""Functional core - pure business logic with no I/O."""

from .tasks import Progress, Task, TaskInput, apply_progress_update, new_task
from .sync import RemoteEvent, SyncResult, SyncSummary, reconcile
from .users import GoogleIdentity, OAuthTokens, User, apply_login

__all__ = [
    # Tasks
    "Progress",
    "Task",
    "TaskInput",
    "apply_progress_update",
    "new_task",
    # Sync
    "RemoteEvent",
    "SyncResult",
    "SyncSummary",
    "reconcile",
    # Users
    "GoogleIdentity",
    "OAuthTokens",
    "User",
    "apply_login",
]
