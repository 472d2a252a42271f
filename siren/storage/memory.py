"""In-memory session store."""

from collections import defaultdict

from siren.domain.models import SafetySession, SessionLogEntry
from siren.storage.interfaces import SessionStore


class InMemorySessionStore(SessionStore):
    """Session store kept in process memory. Lost on restart."""

    def __init__(self) -> None:
        self._sessions: dict[str, SafetySession] = {}
        self._logs: dict[str, list[SessionLogEntry]] = defaultdict(list)

    async def save(self, session: SafetySession) -> None:
        self._sessions[session.session_id] = session.snapshot()

    async def get(self, session_id: str) -> SafetySession | None:
        session = self._sessions.get(session_id)
        return session.snapshot() if session else None

    async def list_sessions(self, include_terminal: bool = False) -> list[SafetySession]:
        sessions = [
            session.snapshot()
            for session in self._sessions.values()
            if include_terminal or not session.is_terminal
        ]
        return sorted(sessions, key=lambda session: session.created_at, reverse=True)

    async def append_log(self, entry: SessionLogEntry) -> None:
        self._logs[entry.session_id].append(entry)

    async def get_log(self, session_id: str, limit: int = 100) -> list[SessionLogEntry]:
        return list(self._logs.get(session_id, [])[-limit:])
