"""Session persistence."""

from .interfaces import SessionStore
from .memory import InMemorySessionStore

__all__ = ["SessionStore", "InMemorySessionStore"]
