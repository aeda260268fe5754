"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any

from focusdesk.errors import ValidationError

# Keys clients echo back from a previously fetched task; never writable.
READ_ONLY_KEYS = frozenset(
    {"_id", "id", "ownerId", "deleted", "googleEventId", "createdAt", "updatedAt"}
)

_PAYLOAD_KEYS = {
    "title": "title",
    "progress": "progress",
    "completed": "completed",
    "completedAt": "completed_at",
    "dueDate": "due_date",
    "duration": "duration",
    "pomodoroCount": "pomodoro_count",
}


class Progress(Enum):
    """Kanban column a task sits in."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def parse(cls, value: Any) -> "Progress":
        """Accept wire values ("In Progress") or member names ("IN_PROGRESS", "InProgress")."""
        if isinstance(value, Progress):
            return value
        if isinstance(value, str):
            for member in cls:
                if value == member.value:
                    return member
            key = value.strip().replace(" ", "").replace("_", "").upper()
            for member in cls:
                if key == member.name.replace("_", ""):
                    return member
        allowed = ", ".join(f'"{m.value}"' for m in cls)
        raise ValidationError(f"Invalid progress {value!r}; expected one of {allowed}")


@dataclass
class Task:
    """A unit of work on the board."""

    id: str
    owner_id: str
    title: str
    progress: Progress = Progress.NOT_STARTED
    completed: bool = False
    completed_at: datetime | None = None
    due_date: datetime | None = None
    duration: int = 0
    pomodoro_count: int = 0
    remote_event_id: str | None = None
    deleted: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_synced(self) -> bool:
        return self.remote_event_id is not None

    def to_dict(self) -> dict:
        """Wire representation (camelCase, ISO datetimes)."""
        return {
            "_id": self.id,
            "id": self.id,
            "ownerId": self.owner_id,
            "title": self.title,
            "progress": self.progress.value,
            "completed": self.completed,
            "completedAt": _iso(self.completed_at),
            "dueDate": _iso(self.due_date),
            "duration": self.duration,
            "pomodoroCount": self.pomodoro_count,
            "googleEventId": self.remote_event_id,
            "deleted": self.deleted,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class TaskInput:
    """
    Validated task fields from a create or update request.

    `provided` records which fields the caller actually sent, so an explicit
    null (e.g. clearing a due date) can be told apart from an omitted field.
    """

    title: str | None = None
    progress: Progress | None = None
    completed: bool | None = None
    completed_at: datetime | None = None
    due_date: datetime | None = None
    duration: int | None = None
    pomodoro_count: int | None = None
    provided: frozenset[str] = field(default_factory=frozenset)

    def has(self, name: str) -> bool:
        return name in self.provided

    @classmethod
    def from_payload(cls, payload: Any, partial: bool = False) -> "TaskInput":
        """
        Build a TaskInput from a decoded JSON body.

        Raises ValidationError for unknown keys, bad types, an empty title or an
        unknown progress value. With partial=False a title is required.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        unknown = sorted(set(payload) - set(_PAYLOAD_KEYS) - READ_ONLY_KEYS)
        if unknown:
            raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for key, attr in _PAYLOAD_KEYS.items():
            if key not in payload:
                continue
            raw = payload[key]
            match attr:
                case "title":
                    values[attr] = _parse_title(raw)
                case "progress":
                    values[attr] = Progress.parse(raw)
                case "completed":
                    if not isinstance(raw, bool):
                        raise ValidationError("completed must be a boolean")
                    values[attr] = raw
                case "completed_at" | "due_date":
                    values[attr] = parse_datetime(raw, key)
                case "duration" | "pomodoro_count":
                    values[attr] = _parse_count(raw, key)

        if not partial and "title" not in values:
            raise ValidationError("title is required")

        return cls(provided=frozenset(values), **values)


def parse_datetime(value: Any, name: str = "date") -> datetime | None:
    """
    Parse an ISO date or datetime into an aware UTC datetime.

    Date-only strings become midnight UTC; naive datetimes are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"{name} is not a valid ISO date: {value!r}")
    else:
        raise ValidationError(f"{name} must be an ISO date string")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def apply_progress_update(task: Task, changes: TaskInput, now: datetime) -> Task:
    """
    Merge requested changes over a task, deriving completion from progress.

    Progress is the single source of truth for `completed` and `completed_at`:
    - moving to (or staying in) Done sets completed and keeps an existing
      completion time, else uses an explicit completedAt, else `now`;
    - any other progress clears both, whatever the caller sent for them;
    - a bare `completed` flag (the board checkbox) is read as a progress change;
    - a bare completedAt without progress is ignored.

    Pure function - no I/O. Re-applying the same update is a no-op.
    """
    updates: dict[str, Any] = {}
    for name in ("title", "due_date", "duration", "pomodoro_count"):
        if changes.has(name):
            updates[name] = getattr(changes, name)

    progress = _requested_progress(task, changes)
    if progress is Progress.DONE:
        if task.progress is Progress.DONE and task.completed_at is not None:
            completed_at = task.completed_at
        elif changes.has("completed_at") and changes.completed_at is not None:
            completed_at = changes.completed_at
        else:
            completed_at = now
        updates.update(progress=progress, completed=True, completed_at=completed_at)
    elif progress is not None:
        updates.update(progress=progress, completed=False, completed_at=None)

    return replace(task, **updates)


def new_task(owner_id: str, task_input: TaskInput, now: datetime) -> Task:
    """Build an unsaved task (id assigned by the store) from validated input."""
    blank = Task(id="", owner_id=owner_id, title=task_input.title or "")
    return apply_progress_update(blank, task_input, now)


def mutable_fields(task: Task) -> dict[str, Any]:
    """Fields the update path may write back to the store."""
    return {
        "title": task.title,
        "progress": task.progress,
        "completed": task.completed,
        "completed_at": task.completed_at,
        "due_date": task.due_date,
        "duration": task.duration,
        "pomodoro_count": task.pomodoro_count,
    }


def filter_by_progress(tasks: list[Task], progress: Progress) -> list[Task]:
    """Tasks in a single board column."""
    return [t for t in tasks if t.progress is progress]


def _requested_progress(task: Task, changes: TaskInput) -> Progress | None:
    if changes.has("progress"):
        return changes.progress
    if changes.has("completed"):
        if changes.completed:
            return Progress.DONE
        if task.progress is Progress.DONE:
            return Progress.NOT_STARTED
        return task.progress
    return None


def _parse_title(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("title must be a non-empty string")
    return raw.strip()


def _parse_count(raw: Any, name: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise ValidationError(f"{name} must be a non-negative integer")
    return raw


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
