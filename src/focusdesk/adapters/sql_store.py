"""SQL task and user stores.

Implements the TaskRepository and UserRepository protocols on SQLAlchemy.
Every task query is filtered on owner_id, so a wrong owner looks exactly like
a missing task.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from focusdesk.core.tasks import Progress, Task
from focusdesk.core.users import User
from focusdesk.errors import DuplicateRemoteEvent, PersistenceFailure

from .sql_models import Database, TaskRow, UserRow, utcnow

logger = logging.getLogger(__name__)

_WRITABLE_TASK_FIELDS = frozenset(
    {"title", "progress", "completed", "completed_at", "due_date", "duration", "pomodoro_count"}
)


@contextmanager
def _transaction(db: Database, action: str) -> Iterator[Session]:
    """Commit on success; translate database errors into PersistenceFailure."""
    session = db.session_factory()
    try:
        yield session
        session.commit()
    except IntegrityError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceFailure(f"{action} failed: {e.__class__.__name__}")
    finally:
        session.close()


def _new_id() -> str:
    return uuid.uuid4().hex


class SQLTaskStore:
    """
    Task store on a relational database.

    The (owner_id, remote_event_id) unique constraint is what keeps two
    overlapping sync passes from inserting the same event twice.
    """

    def __init__(self, db: Database):
        self.db = db

    def _row_to_task(self, row: TaskRow) -> Task:
        return Task(
            id=row.id,
            owner_id=row.owner_id,
            title=row.title,
            progress=Progress(row.progress),
            completed=bool(row.completed),
            completed_at=row.completed_at,
            due_date=row.due_date,
            duration=int(row.duration or 0),
            pomodoro_count=int(row.pomodoro_count or 0),
            remote_event_id=row.remote_event_id,
            deleted=bool(row.deleted),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def find_by_remote_event(self, owner_id: str, remote_event_id: str) -> Task | None:
        """Find the task for a calendar event, including soft-deleted tasks."""
        with _transaction(self.db, "Lookup by event") as session:
            row = session.scalars(
                select(TaskRow).where(
                    TaskRow.owner_id == owner_id,
                    TaskRow.remote_event_id == remote_event_id,
                )
            ).first()
            return self._row_to_task(row) if row else None

    def get(self, task_id: str, owner_id: str) -> Task | None:
        with _transaction(self.db, "Get task") as session:
            row = session.scalars(
                select(TaskRow).where(
                    TaskRow.id == task_id,
                    TaskRow.owner_id == owner_id,
                    TaskRow.deleted.is_(False),
                )
            ).first()
            return self._row_to_task(row) if row else None

    def create(self, task: Task) -> Task:
        now = utcnow()
        row = TaskRow(
            id=_new_id(),
            owner_id=task.owner_id,
            title=task.title,
            progress=task.progress.value,
            completed=task.completed,
            completed_at=task.completed_at,
            due_date=task.due_date,
            duration=task.duration,
            pomodoro_count=task.pomodoro_count,
            remote_event_id=task.remote_event_id,
            deleted=False,
            created_at=now,
            updated_at=now,
        )
        try:
            with _transaction(self.db, "Create task") as session:
                session.add(row)
        except IntegrityError:
            if task.remote_event_id is not None:
                raise DuplicateRemoteEvent(task.owner_id, task.remote_event_id)
            raise PersistenceFailure(f"Create task failed for user {task.owner_id}")

        logger.debug(f"Task created id={row.id} owner={row.owner_id} event={row.remote_event_id}")
        return self._row_to_task(row)

    def update(
        self,
        task_id: str,
        owner_id: str,
        fields: dict[str, Any],
        require_not_deleted: bool = True,
    ) -> Task | None:
        unknown = set(fields) - _WRITABLE_TASK_FIELDS
        if unknown:
            raise ValueError(f"Fields not writable: {', '.join(sorted(unknown))}")

        with _transaction(self.db, "Update task") as session:
            query = select(TaskRow).where(TaskRow.id == task_id, TaskRow.owner_id == owner_id)
            if require_not_deleted:
                query = query.where(TaskRow.deleted.is_(False))
            row = session.scalars(query).first()
            if row is None:
                return None

            for name, value in fields.items():
                if name == "progress":
                    value = Progress.parse(value).value
                setattr(row, name, value)
            row.updated_at = utcnow()
            session.flush()
            return self._row_to_task(row)

    def soft_delete(self, task_id: str, owner_id: str) -> bool:
        with _transaction(self.db, "Delete task") as session:
            row = session.scalars(
                select(TaskRow).where(TaskRow.id == task_id, TaskRow.owner_id == owner_id)
            ).first()
            if row is None:
                return False
            if not row.deleted:
                row.deleted = True
                row.updated_at = utcnow()
            return True

    def list_active(self, owner_id: str) -> list[Task]:
        with _transaction(self.db, "List tasks") as session:
            rows = session.scalars(
                select(TaskRow)
                .where(TaskRow.owner_id == owner_id, TaskRow.deleted.is_(False))
                .order_by(
                    TaskRow.due_date.asc().nulls_first(),
                    TaskRow.created_at.desc(),
                )
            ).all()
            return [self._row_to_task(r) for r in rows]

    def count(self, owner_id: str, include_deleted: bool = False) -> int:
        """Number of tasks for an owner."""
        with _transaction(self.db, "Count tasks") as session:
            query = select(func.count()).select_from(TaskRow).where(TaskRow.owner_id == owner_id)
            if not include_deleted:
                query = query.where(TaskRow.deleted.is_(False))
            return int(session.scalar(query) or 0)


class SQLUserStore:
    """User accounts on the same database as the tasks."""

    def __init__(self, db: Database):
        self.db = db

    @staticmethod
    def _row_to_user(row: UserRow) -> User:
        return User(
            id=row.id,
            google_id=row.google_id,
            email=row.email or "",
            access_token=row.access_token or "",
            refresh_token=row.refresh_token or "",
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def get(self, user_id: str) -> User | None:
        with _transaction(self.db, "Get user") as session:
            row = session.get(UserRow, user_id)
            return self._row_to_user(row) if row else None

    def get_by_google_id(self, google_id: str) -> User | None:
        with _transaction(self.db, "Get user") as session:
            row = session.scalars(select(UserRow).where(UserRow.google_id == google_id)).first()
            return self._row_to_user(row) if row else None

    def list_all(self) -> list[User]:
        with _transaction(self.db, "List users") as session:
            rows = session.scalars(select(UserRow).order_by(UserRow.created_at.asc())).all()
            return [self._row_to_user(r) for r in rows]

    def save(self, user: User) -> User:
        now = utcnow()
        try:
            with _transaction(self.db, "Save user") as session:
                row = session.get(UserRow, user.id) if user.id else None
                if row is None:
                    row = UserRow(id=user.id or _new_id(), google_id=user.google_id, created_at=now)
                    session.add(row)
                row.email = user.email
                row.access_token = user.access_token
                row.refresh_token = user.refresh_token
                row.updated_at = now
        except IntegrityError:
            raise PersistenceFailure(f"User with Google id {user.google_id} already exists")

        logger.info(f"Saved user {row.id} ({row.email})")
        return self._row_to_user(row)

    def update_access_token(self, user_id: str, access_token: str) -> None:
        with _transaction(self.db, "Update token") as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return
            row.access_token = access_token
            row.updated_at = utcnow()
