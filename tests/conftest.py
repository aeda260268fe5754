"""Shared fixtures: a throwaway SQLite database and a scriptable calendar."""

from datetime import datetime, timezone

import pytest

from focusdesk.adapters.sql_models import Database
from focusdesk.adapters.sql_store import SQLTaskStore, SQLUserStore
from focusdesk.core.sync import RemoteEvent
from focusdesk.core.users import User


class FakeCalendar:
    """
    CalendarRepository stand-in.

    Each user id maps to a list of events, or to an exception to raise.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = responses or {}
        self.calls: list[str] = []

    def list_upcoming_events(self, user: User) -> list[RemoteEvent]:
        self.calls.append(user.id)
        response = self.responses.get(user.id, [])
        if isinstance(response, Exception):
            raise response
        return list(response)


@pytest.fixture
def now():
    return datetime(2025, 1, 8, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'focusdesk.sqlite3'}")
    yield database
    database.dispose()


@pytest.fixture
def task_store(db):
    return SQLTaskStore(db)


@pytest.fixture
def user_store(db):
    return SQLUserStore(db)


@pytest.fixture
def make_user(user_store):
    """Save a user with a token pair and return it."""

    def _make(google_id: str = "g-1", email: str = "me@example.com", tokens: bool = True) -> User:
        return user_store.save(
            User(
                id="",
                google_id=google_id,
                email=email,
                access_token="access-token" if tokens else "",
                refresh_token="refresh-token" if tokens else "",
            )
        )

    return _make


@pytest.fixture
def fake_calendar():
    return FakeCalendar()
