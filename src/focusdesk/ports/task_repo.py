"""Task repository interface."""

from typing import Any, Protocol

from focusdesk.core.tasks import Task


class TaskRepository(Protocol):
    """Interface for persisting tasks. Every lookup is scoped to an owner."""

    def find_by_remote_event(self, owner_id: str, remote_event_id: str) -> Task | None:
        """Find the task created from a calendar event, deleted or not."""
        ...

    def get(self, task_id: str, owner_id: str) -> Task | None:
        """Fetch a non-deleted task. None if missing or owned by someone else."""
        ...

    def create(self, task: Task) -> Task:
        """Insert a task and return it with id and timestamps assigned."""
        ...

    def update(
        self,
        task_id: str,
        owner_id: str,
        fields: dict[str, Any],
        require_not_deleted: bool = True,
    ) -> Task | None:
        """Write fields to an owned task. None if no such task for this owner."""
        ...

    def soft_delete(self, task_id: str, owner_id: str) -> bool:
        """Mark an owned task deleted. False if no such task for this owner."""
        ...

    def list_active(self, owner_id: str) -> list[Task]:
        """Non-deleted tasks, due date ascending then newest first."""
        ...
