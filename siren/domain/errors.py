"""Errors raised by the escalation engine and its collaborators."""


class SirenError(Exception):
    """Base class for escalation errors."""


class InvalidSession(SirenError):
    """An operation referenced an unknown or terminal session."""

    def __init__(self, session_id: str, reason: str = "unknown session"):
        self.session_id = session_id
        self.reason = reason
        super().__init__(f"Session {session_id}: {reason}")


class StaleEpoch(SirenError):
    """A countdown callback lost the race against a newer transition."""

    def __init__(self, session_id: str, epoch: int, current_epoch: int):
        self.session_id = session_id
        self.epoch = epoch
        self.current_epoch = current_epoch
        super().__init__(
            f"Session {session_id}: callback for epoch {epoch} "
            f"arrived at epoch {current_epoch}"
        )


class NotifierFailure(SirenError):
    """The notifier could not deliver an escalation action."""

    def __init__(self, message: str, provider_id: str | None = None):
        self.provider_id = provider_id
        super().__init__(message)


class ContactsUnavailable(SirenError):
    """The contacts backend refused the request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
