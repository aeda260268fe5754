"""Calendar sync: on-demand for one user, and a recurring pass over everyone."""

import logging
from datetime import datetime, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .core.sync import SyncResult, SyncSummary, reconcile
from .core.users import User
from .errors import AuthRequired, FocusdeskError
from .ports import CalendarRepository, TaskRepository, UserRepository

logger = logging.getLogger(__name__)

JOB_ID = "calendar_sync"


class SyncScheduler:
    """
    Drives reconciliation for one user or all users.

    `tick()` is the background job body and can be called directly; `start()`
    registers it on an interval with APScheduler. One user's failure is logged
    and never stops the pass over the remaining users.
    """

    def __init__(
        self,
        users: UserRepository,
        tasks: TaskRepository,
        calendar: CalendarRepository,
        interval_minutes: int = 5,
        timezone_name: str = "UTC",
        clock: Callable[[], datetime] | None = None,
        reconciler: Callable[..., SyncResult] = reconcile,
    ):
        self.users = users
        self.tasks = tasks
        self.calendar = calendar
        self.interval_minutes = interval_minutes
        self.timezone_name = timezone_name
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.reconciler = reconciler
        self.last_run_at: datetime | None = None
        self._scheduler: BackgroundScheduler | None = None

    def sync_user(self, owner_id: str) -> SyncSummary:
        """
        Sync one user now.

        Raises AuthRequired if the user is unknown or has no stored credential,
        and lets AuthRequired / UpstreamUnavailable from the calendar through.
        Nothing is retried within the call.
        """
        user = self.users.get(owner_id)
        if user is None:
            raise AuthRequired(f"No Google credential stored for user {owner_id}")
        return self._sync(user)

    def _sync(self, user: User) -> SyncSummary:
        if not user.has_credentials:
            raise AuthRequired(f"No Google credential stored for user {user.id}")

        events = self.calendar.list_upcoming_events(user)
        result = self.reconciler(user.id, events, self.tasks, self.timezone_name)

        if result.failed:
            failed_ids = ", ".join(event_id for event_id, _ in result.failed)
            logger.warning(f"Sync for {user.email} ({user.id}) left {len(result.failed)} events unsynced: {failed_ids}")
        logger.info(
            f"Synced {user.email} ({user.id}): {result.created_count} new, "
            f"{result.skipped_count} existing, {len(events)} listed"
        )
        return SyncSummary(synced=result.created_count, total=len(events))

    def tick(self) -> dict[str, SyncSummary | Exception]:
        """Run one background pass over every known user."""
        self.last_run_at = self.clock()
        logger.info("Running auto-sync...")

        try:
            users = self.users.list_all()
        except FocusdeskError as e:
            logger.error(f"Auto-sync could not list users: {e}")
            return {}

        outcomes: dict[str, SyncSummary | Exception] = {}
        for user in users:
            try:
                outcomes[user.id] = self._sync(user)
            except FocusdeskError as e:
                logger.warning(f"Sync failed for {user.email} ({user.id}): {e}")
                outcomes[user.id] = e
            except Exception as e:
                logger.exception(f"Unexpected sync error for {user.email} ({user.id})")
                outcomes[user.id] = e

        succeeded = sum(1 for o in outcomes.values() if isinstance(o, SyncSummary))
        logger.info(f"Auto-sync finished: {succeeded}/{len(outcomes)} users synced")
        return outcomes

    def start(self) -> None:
        """Start the recurring background sync."""
        if self._scheduler is not None:
            return
        scheduler = BackgroundScheduler(timezone=self.timezone_name)
        scheduler.add_job(
            self.tick,
            IntervalTrigger(minutes=self.interval_minutes),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(f"Scheduled calendar sync every {self.interval_minutes} minutes")

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Calendar sync stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None
