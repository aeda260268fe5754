"""Tests for Google Calendar adapter."""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

import httplib2
import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from focusdesk.adapters.google_calendar import GoogleCalendarAdapter
from focusdesk.core.users import User
from focusdesk.errors import AuthRequired, UpstreamUnavailable


@pytest.fixture
def user():
    return User(id="u1", google_id="g-1", email="me@example.com", access_token="old-token", refresh_token="refresh")


@pytest.fixture
def adapter():
    return GoogleCalendarAdapter(
        client_id="client-id",
        client_secret="client-secret",
        clock=lambda: datetime(2025, 1, 8, 9, 30, tzinfo=timezone.utc),
    )


def http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b"{}")


class TestGoogleCalendarAdapter:
    def test_credentials_from_user_tokens(self, adapter, user):
        creds = adapter._get_credentials(user)
        assert creds.token == "old-token"
        assert creds.refresh_token == "refresh"
        assert creds.client_id == "client-id"

    def test_missing_tokens_require_auth(self, adapter):
        user = User(id="u2", google_id="g-2", email="x@example.com")
        with pytest.raises(AuthRequired):
            adapter.list_upcoming_events(user)

    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._build_service")
    def test_lists_primary_calendar_upcoming_single_events(self, mock_build, adapter, user):
        service = MagicMock()
        mock_build.return_value = service
        service.events().list().execute.return_value = {"items": []}

        adapter.list_upcoming_events(user)

        service.events().list.assert_called_with(
            calendarId="primary",
            timeMin="2025-01-08T09:30:00+00:00",
            maxResults=50,
            singleEvents=True,
            orderBy="startTime",
        )

    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._build_service")
    def test_returns_timed_and_all_day_events(self, mock_build, adapter, user):
        service = MagicMock()
        mock_build.return_value = service
        service.events().list().execute.return_value = {
            "items": [
                {
                    "id": "g1",
                    "summary": "Holiday",
                    "start": {"date": "2025-01-10"},
                    "end": {"date": "2025-01-11"},
                },
                {
                    "id": "g2",
                    "summary": "Standup",
                    "start": {"dateTime": "2025-01-15T10:00:00-05:00"},
                    "end": {"dateTime": "2025-01-15T10:30:00-05:00"},
                },
            ]
        }

        events = adapter.list_upcoming_events(user)

        assert [e.id for e in events] == ["g1", "g2"]
        assert events[0].all_day is True
        assert events[0].start == date(2025, 1, 10)
        assert events[1].title == "Standup"
        assert events[1].all_day is False

    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._build_service")
    def test_malformed_event_skipped(self, mock_build, adapter, user):
        service = MagicMock()
        mock_build.return_value = service
        service.events().list().execute.return_value = {
            "items": [
                {"summary": "No id", "start": {"date": "2025-01-10"}},
                {"id": "g2", "summary": "Bad date", "start": {"date": "10/01/2025"}},
                {"id": "g3", "summary": "Fine", "start": {"date": "2025-01-10"}},
            ]
        }

        events = adapter.list_upcoming_events(user)

        assert [e.id for e in events] == ["g3"]

    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._build_service")
    def test_refresh_error_requires_auth(self, mock_build, adapter, user):
        service = MagicMock()
        mock_build.return_value = service
        service.events().list().execute.side_effect = RefreshError("invalid_grant")

        with pytest.raises(AuthRequired) as exc_info:
            adapter.list_upcoming_events(user)
        assert "refresh" not in str(exc_info.value)

    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._build_service")
    def test_http_401_requires_auth(self, mock_build, adapter, user):
        service = MagicMock()
        mock_build.return_value = service
        service.events().list().execute.side_effect = http_error(401)

        with pytest.raises(AuthRequired):
            adapter.list_upcoming_events(user)

    @pytest.mark.parametrize("status", [403, 429, 500, 503])
    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._build_service")
    def test_other_http_errors_are_upstream(self, mock_build, status, adapter, user):
        service = MagicMock()
        mock_build.return_value = service
        service.events().list().execute.side_effect = http_error(status)

        with pytest.raises(UpstreamUnavailable, match=str(status)):
            adapter.list_upcoming_events(user)

    @pytest.mark.parametrize("error", [TimeoutError("timed out"), httplib2.ServerNotFoundError("dns")])
    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._build_service")
    def test_timeouts_are_upstream(self, mock_build, error, adapter, user):
        service = MagicMock()
        mock_build.return_value = service
        service.events().list().execute.side_effect = error

        with pytest.raises(UpstreamUnavailable):
            adapter.list_upcoming_events(user)

    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._get_credentials")
    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._build_service")
    def test_refreshed_token_is_saved(self, mock_build, mock_creds, user):
        saver = MagicMock()
        adapter = GoogleCalendarAdapter(client_id="c", client_secret="s", token_saver=saver)
        mock_creds.return_value = MagicMock(token="new-token")
        service = MagicMock()
        mock_build.return_value = service
        service.events().list().execute.return_value = {"items": []}

        adapter.list_upcoming_events(user)

        saver.assert_called_once_with("u1", "new-token")

    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._get_credentials")
    @patch("focusdesk.adapters.google_calendar.GoogleCalendarAdapter._build_service")
    def test_unchanged_token_not_saved(self, mock_build, mock_creds, user):
        saver = MagicMock()
        adapter = GoogleCalendarAdapter(client_id="c", client_secret="s", token_saver=saver)
        mock_creds.return_value = MagicMock(token="old-token")
        service = MagicMock()
        mock_build.return_value = service
        service.events().list().execute.return_value = {"items": []}

        adapter.list_upcoming_events(user)

        saver.assert_not_called()
