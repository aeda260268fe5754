"""Configuration management for FocusDesk."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

FOCUSDESK_HOME = Path(os.environ.get("FOCUSDESK_HOME", Path.home() / "focusdesk"))
CONFIG_FILE = FOCUSDESK_HOME / "config" / "focusdesk.conf"
DATA_DIR = FOCUSDESK_HOME / "data"


@dataclass
class Config:
    """FocusDesk configuration."""

    google_client_id: str = ""
    google_client_secret: str = ""
    backend_url: str = "http://localhost:5000"
    frontend_url: str = "http://localhost:5173"
    session_secret: str = ""
    cookie_secure: bool = False
    database_url: str = ""
    allowed_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])
    timezone: str = "UTC"
    # Background sync
    sync_interval_minutes: int = 5
    sync_max_results: int = 50
    calendar_timeout_seconds: int = 20

    @property
    def redirect_uri(self) -> str:
        return f"{self.backend_url.rstrip('/')}/api/auth/callback"

    def resolved_database_url(self) -> str:
        """Configured database URL, or a SQLite file under the data dir."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{DATA_DIR / 'focusdesk.sqlite3'}"


def load_config(path: Path | None = None) -> Config:
    """Load configuration from focusdesk.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _strip_value(value.strip())

        match key:
            case "google_client_id":
                config.google_client_id = value
            case "google_client_secret":
                config.google_client_secret = value
            case "backend_url":
                config.backend_url = value
            case "frontend_url":
                config.frontend_url = value
            case "session_secret":
                config.session_secret = value
            case "cookie_secure":
                config.cookie_secure = value.lower() in ("1", "true", "yes", "on")
            case "database_url":
                config.database_url = value
            case "allowed_origins":
                config.allowed_origins = [o.strip() for o in value.split(",") if o.strip()]
            case "timezone":
                config.timezone = _parse_timezone(value, config.timezone)
            case "sync_interval_minutes":
                config.sync_interval_minutes = _parse_positive_int(key, value, config.sync_interval_minutes)
            case "sync_max_results":
                config.sync_max_results = _parse_positive_int(key, value, config.sync_max_results)
            case "calendar_timeout_seconds":
                config.calendar_timeout_seconds = _parse_positive_int(
                    key, value, config.calendar_timeout_seconds
                )
            case _:
                logger.warning(f"Unknown config key: {key}")

    return config


def _strip_value(value: str) -> str:
    """Handle quoted values with inline comments: "value" # comment"""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        if end_quote != -1:
            return value[1:end_quote]
        return value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def _parse_timezone(value: str, default: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown TIMEZONE {value!r}, using {default}")
        return default
    return value


def _parse_positive_int(key: str, value: str, default: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key.upper()}: {value!r}, using {default}")
        return default
    if parsed <= 0:
        logger.warning(f"{key.upper()} must be positive, using {default}")
        return default
    return parsed
