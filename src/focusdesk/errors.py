"""Error taxonomy shared by the core, adapters and the HTTP layer."""


class FocusdeskError(Exception):
    """Base class for all FocusDesk errors."""

    pass


class Unauthenticated(FocusdeskError):
    """No session, or the session does not identify a known user."""

    pass


class NotFound(FocusdeskError):
    """Task missing, owned by someone else, or already gone."""

    pass


class ValidationError(FocusdeskError):
    """Request payload failed validation."""

    pass


class AuthRequired(FocusdeskError):
    """Stored Google credential is missing or was rejected."""

    pass


class UpstreamUnavailable(FocusdeskError):
    """Calendar listing failed for a non-auth reason (network, quota, timeout)."""

    pass


class PersistenceFailure(FocusdeskError):
    """The task store could not complete a write."""

    pass


class DuplicateRemoteEvent(PersistenceFailure):
    """A task for this (owner, remote event) pair already exists."""

    def __init__(self, owner_id: str, remote_event_id: str):
        super().__init__(f"Task for event {remote_event_id} already exists for user {owner_id}")
        self.owner_id = owner_id
        self.remote_event_id = remote_event_id
