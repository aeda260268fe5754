"""Adapters - I/O implementations of ports."""

from .sql_models import Database
from .sql_store import SQLTaskStore, SQLUserStore
from .google_calendar import GoogleCalendarAdapter
from .google_oauth import GoogleOAuthClient

__all__ = [
    "Database",
    "SQLTaskStore",
    "SQLUserStore",
    "GoogleCalendarAdapter",
    "GoogleOAuthClient",
]
