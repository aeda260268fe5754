"""Google Calendar API adapter."""

import logging
from datetime import datetime, timezone
from typing import Callable

from focusdesk.core.sync import RemoteEvent
from focusdesk.core.users import User
from focusdesk.errors import AuthRequired, UpstreamUnavailable

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class GoogleCalendarAdapter:
    """
    Lists a user's upcoming events from their primary Google Calendar.

    Implements CalendarRepository protocol. Credentials come from the user
    record; a refreshed access token is passed to `token_saver` so the next
    call does not refresh again.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        max_results: int = 50,
        timeout: int = 20,
        token_saver: Callable[[str, str], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.max_results = max_results
        self.timeout = timeout
        self.token_saver = token_saver
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _get_credentials(self, user: User):
        """Build credentials from the stored token pair."""
        from google.oauth2.credentials import Credentials

        if not user.has_credentials:
            raise AuthRequired(f"No Google credential stored for user {user.id}")

        return Credentials(
            token=user.access_token or None,
            refresh_token=user.refresh_token or None,
            token_uri=TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=SCOPES,
        )

    def _build_service(self, creds):
        """Build a Google Calendar API service with a bounded HTTP timeout."""
        import httplib2
        from google_auth_httplib2 import AuthorizedHttp
        from googleapiclient.discovery import build

        http = AuthorizedHttp(creds, http=httplib2.Http(timeout=self.timeout))
        return build("calendar", "v3", http=http, cache_discovery=False)

    def list_upcoming_events(self, user: User) -> list[RemoteEvent]:
        """Fetch upcoming events, recurring ones expanded, ordered by start time."""
        import httplib2
        from google.auth.exceptions import RefreshError, TransportError
        from googleapiclient.errors import HttpError

        creds = self._get_credentials(user)
        time_min = self.clock().astimezone(timezone.utc).isoformat()

        try:
            service = self._build_service(creds)
            result = (
                service.events()
                .list(
                    calendarId="primary",
                    timeMin=time_min,
                    maxResults=self.max_results,
                    singleEvents=True,
                    orderBy="startTime",
                )
                .execute()
            )
        except RefreshError:
            raise AuthRequired(f"Google rejected the stored credential for user {user.id}")
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            if status == 401:
                raise AuthRequired(f"Google rejected the stored credential for user {user.id}")
            raise UpstreamUnavailable(f"Calendar listing failed for user {user.id}: HTTP {status}")
        except (TransportError, httplib2.HttpLib2Error, OSError) as e:
            # Includes socket timeouts
            raise UpstreamUnavailable(
                f"Calendar listing failed for user {user.id}: {e.__class__.__name__}"
            )

        self._save_refreshed_token(user, creds)

        events = []
        for item in result.get("items", []):
            try:
                events.append(RemoteEvent.from_api(item))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed event {item.get('id')} for user {user.id}: {e}")
        logger.debug(f"Listed {len(events)} upcoming events for user {user.id}")
        return events

    def _save_refreshed_token(self, user: User, creds) -> None:
        if not self.token_saver or not creds.token or creds.token == user.access_token:
            return
        try:
            self.token_saver(user.id, creds.token)
        except Exception as e:
            logger.warning(f"Failed to persist refreshed token for user {user.id}: {e}")
