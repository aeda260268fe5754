"""Calendar-to-board reconciliation.

One-directional: remote events only ever create tasks. Existing tasks,
including soft-deleted ones, are never touched, so a task the user deleted
is not resurrected by the next sync.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from focusdesk.core.tasks import Progress, Task
from focusdesk.errors import DuplicateRemoteEvent, PersistenceFailure

if TYPE_CHECKING:
    from focusdesk.ports import TaskRepository

logger = logging.getLogger(__name__)


@dataclass
class RemoteEvent:
    """A calendar event instance as listed by Google Calendar."""

    id: str
    title: str
    start: datetime | date | None = None

    @property
    def all_day(self) -> bool:
        return isinstance(self.start, date) and not isinstance(self.start, datetime)

    def due_date(self, tz: str = "UTC") -> datetime | None:
        """Start time as an aware UTC datetime; all-day events start at local midnight."""
        if self.start is None:
            return None
        if self.all_day:
            local = datetime.combine(self.start, time.min, tzinfo=ZoneInfo(tz))
            return local.astimezone(timezone.utc)
        start = self.start
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        return start.astimezone(timezone.utc)

    @classmethod
    def from_api(cls, data: dict) -> "RemoteEvent":
        """Create RemoteEvent from a Google Calendar events.list item."""
        start_raw = data.get("start") or {}
        start: datetime | date | None = None
        if start_raw.get("dateTime"):
            start = datetime.fromisoformat(start_raw["dateTime"].replace("Z", "+00:00"))
        elif start_raw.get("date"):
            start = date.fromisoformat(start_raw["date"])
        return cls(
            id=data["id"],
            title=(data.get("summary") or "").strip(),
            start=start,
        )


@dataclass
class SyncResult:
    """Outcome of reconciling one batch of events for one user."""

    created_count: int = 0
    considered_count: int = 0
    skipped_count: int = 0
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class SyncSummary:
    """What an on-demand sync reports back: new tasks out of events listed."""

    synced: int
    total: int

    def to_dict(self) -> dict:
        return {"synced": self.synced, "total": self.total}


def reconcile(
    owner_id: str,
    remote_events: list[RemoteEvent],
    store: "TaskRepository",
    timezone_name: str = "UTC",
) -> SyncResult:
    """
    Merge remote events into the owner's tasks.

    For each titled event, create a Not Started task unless any task (deleted
    or not) already carries that event id. Untitled events are ignored and not
    counted. A write failure for one event is logged and recorded; the rest of
    the batch still runs.
    """
    result = SyncResult()

    for event in remote_events:
        if not event.title:
            continue
        result.considered_count += 1

        try:
            existing = store.find_by_remote_event(owner_id, event.id)
            if existing is not None:
                result.skipped_count += 1
                logger.debug(f"Skipped existing task for event {event.id} (user {owner_id})")
                continue

            store.create(
                Task(
                    id="",
                    owner_id=owner_id,
                    title=event.title,
                    progress=Progress.NOT_STARTED,
                    due_date=event.due_date(timezone_name),
                    remote_event_id=event.id,
                    deleted=False,
                )
            )
        except DuplicateRemoteEvent:
            # Another pass for this user inserted it first
            result.skipped_count += 1
            logger.debug(f"Event {event.id} already claimed for user {owner_id}")
            continue
        except PersistenceFailure as e:
            result.failed.append((event.id, str(e)))
            logger.error(f"Failed to store event {event.id} for user {owner_id}: {e}")
            continue

        result.created_count += 1
        logger.debug(f"Synced new task '{event.title}' from event {event.id} (user {owner_id})")

    return result
