"""User account rules - no I/O dependencies."""

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass
class GoogleIdentity:
    """Who Google says just logged in."""

    google_id: str
    email: str


@dataclass
class OAuthTokens:
    """Token pair returned by a code exchange. refresh_token may be missing on re-login."""

    access_token: str
    refresh_token: str | None = None


@dataclass
class User:
    """An authenticated account and its Google credential."""

    id: str
    google_id: str
    email: str
    access_token: str = ""
    refresh_token: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_token or self.refresh_token)

    def __repr__(self) -> str:
        # Keep token material out of logs and tracebacks
        return f"User(id={self.id!r}, google_id={self.google_id!r}, email={self.email!r})"


def apply_login(existing: User | None, identity: GoogleIdentity, tokens: OAuthTokens) -> User:
    """
    Create or refresh a user record after a successful Google login.

    The access token is always overwritten. The refresh token is only replaced
    when Google returned a new one, since re-consent is not always requested.
    """
    if existing is None:
        return User(
            id="",
            google_id=identity.google_id,
            email=identity.email,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token or "",
        )
    return replace(
        existing,
        email=identity.email or existing.email,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token or existing.refresh_token,
    )
