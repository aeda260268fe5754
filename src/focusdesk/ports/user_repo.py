"""User repository interface."""

from typing import Protocol

from focusdesk.core.users import User


class UserRepository(Protocol):
    """Interface for reading and writing user accounts."""

    def get(self, user_id: str) -> User | None:
        ...

    def get_by_google_id(self, google_id: str) -> User | None:
        ...

    def list_all(self) -> list[User]:
        """Every registered user, oldest first."""
        ...

    def save(self, user: User) -> User:
        """Insert (empty id) or update a user; returns the stored record."""
        ...

    def update_access_token(self, user_id: str, access_token: str) -> None:
        """Persist a refreshed access token."""
        ...
