"""Calendar repository interface."""

from typing import Protocol

from focusdesk.core.sync import RemoteEvent
from focusdesk.core.users import User


class CalendarRepository(Protocol):
    """Interface for listing a user's upcoming calendar events."""

    def list_upcoming_events(self, user: User) -> list[RemoteEvent]:
        """
        Upcoming single-instance events ordered by start time.

        Raises AuthRequired when the user's credential is missing or rejected,
        UpstreamUnavailable for any other listing failure.
        """
        ...
