"""Repository interfaces for dependency injection."""

from abc import ABC, abstractmethod

from siren.domain.models import SafetySession, SessionLogEntry


class SessionStore(ABC):
    """Interface for safety session persistence."""

    @abstractmethod
    async def save(self, session: SafetySession) -> None:
        """Create or replace a session snapshot."""
        pass

    @abstractmethod
    async def get(self, session_id: str) -> SafetySession | None:
        """Get a session snapshot by ID."""
        pass

    @abstractmethod
    async def list_sessions(self, include_terminal: bool = False) -> list[SafetySession]:
        """List session snapshots, newest first."""
        pass

    @abstractmethod
    async def append_log(self, entry: SessionLogEntry) -> None:
        """Record a session history entry."""
        pass

    @abstractmethod
    async def get_log(self, session_id: str, limit: int = 100) -> list[SessionLogEntry]:
        """Get the most recent history entries of a session, oldest first."""
        pass
