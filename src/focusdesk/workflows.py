"""Shared workflow layer between the CLI and the HTTP API.

Each function takes the wired-up Services plus the caller's user id and
raises FocusdeskError subclasses; translating those to exit codes or HTTP
statuses is left to the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from .adapters.google_calendar import GoogleCalendarAdapter
from .adapters.google_oauth import GoogleOAuthClient
from .adapters.sql_models import Database
from .adapters.sql_store import SQLTaskStore, SQLUserStore
from .config import Config, load_config
from .core.sync import SyncSummary
from .core.tasks import Task, TaskInput, apply_progress_update, mutable_fields, new_task
from .core.users import User, apply_login
from .errors import NotFound, Unauthenticated
from .sync import SyncScheduler

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request or command needs, wired from one Config."""

    config: Config
    db: Database
    tasks: SQLTaskStore
    users: SQLUserStore
    oauth: GoogleOAuthClient
    scheduler: SyncScheduler
    clock: Callable[[], datetime]

    def now(self) -> datetime:
        return self.clock()

    def close(self) -> None:
        self.scheduler.shutdown()
        self.db.dispose()


def build_services(config: Config | None = None, clock: Callable[[], datetime] | None = None) -> Services:
    """Wire stores, Google adapters and the scheduler from configuration."""
    config = config or load_config()
    clock = clock or (lambda: datetime.now(timezone.utc))

    db = Database(config.resolved_database_url())
    tasks = SQLTaskStore(db)
    users = SQLUserStore(db)
    calendar = GoogleCalendarAdapter(
        client_id=config.google_client_id,
        client_secret=config.google_client_secret,
        max_results=config.sync_max_results,
        timeout=config.calendar_timeout_seconds,
        token_saver=users.update_access_token,
        clock=clock,
    )
    oauth = GoogleOAuthClient(
        client_id=config.google_client_id,
        client_secret=config.google_client_secret,
        redirect_uri=config.redirect_uri,
        timeout=config.calendar_timeout_seconds,
    )
    scheduler = SyncScheduler(
        users=users,
        tasks=tasks,
        calendar=calendar,
        interval_minutes=config.sync_interval_minutes,
        timezone_name=config.timezone,
        clock=clock,
    )
    return Services(
        config=config,
        db=db,
        tasks=tasks,
        users=users,
        oauth=oauth,
        scheduler=scheduler,
        clock=clock,
    )


# ============== Accounts ==============


def login(services: Services, code: str) -> User:
    """Complete a Google login: exchange the code, then create or update the user."""
    identity, tokens = services.oauth.exchange_code(code)
    existing = services.users.get_by_google_id(identity.google_id)
    user = services.users.save(apply_login(existing, identity, tokens))
    if existing is None:
        logger.info(f"Registered new user {user.id} ({user.email})")
    return user


def require_user(services: Services, user_id: str | None) -> User:
    """Resolve a session's user id, or raise Unauthenticated."""
    if not user_id:
        raise Unauthenticated("Not authenticated")
    user = services.users.get(user_id)
    if user is None:
        raise Unauthenticated("Not authenticated")
    return user


# ============== Tasks ==============


def list_tasks(services: Services, owner_id: str) -> list[Task]:
    return services.tasks.list_active(owner_id)


def create_task(services: Services, owner_id: str, payload: Any) -> Task:
    """Validate a create request and store the task (never deleted, never synced)."""
    task_input = TaskInput.from_payload(payload)
    task = services.tasks.create(new_task(owner_id, task_input, services.now()))
    logger.info(f"Created task {task.id} '{task.title}' for user {owner_id}")
    return task


def update_task(services: Services, owner_id: str, task_id: str, payload: Any) -> Task:
    """Apply a partial update; completion fields follow progress."""
    task_input = TaskInput.from_payload(payload, partial=True)
    task = services.tasks.get(task_id, owner_id)
    if task is None:
        raise NotFound("Task not found")

    updated = apply_progress_update(task, task_input, services.now())
    stored = services.tasks.update(task_id, owner_id, mutable_fields(updated), require_not_deleted=True)
    if stored is None:
        raise NotFound("Task not found")
    return stored


def record_pomodoro(services: Services, owner_id: str, task_id: str) -> Task:
    """Count one finished focus session against a task."""
    task = services.tasks.get(task_id, owner_id)
    if task is None:
        raise NotFound("Task not found")
    stored = services.tasks.update(
        task_id, owner_id, {"pomodoro_count": task.pomodoro_count + 1}, require_not_deleted=True
    )
    if stored is None:
        raise NotFound("Task not found")
    return stored


def delete_task(services: Services, owner_id: str, task_id: str) -> None:
    """Soft-delete: the row stays so sync will not recreate it."""
    if not services.tasks.soft_delete(task_id, owner_id):
        raise NotFound("Task not found")
    logger.info(f"Deleted task {task_id} for user {owner_id}")


# ============== Sync ==============


def sync_now(services: Services, owner_id: str) -> SyncSummary:
    return services.scheduler.sync_user(owner_id)
