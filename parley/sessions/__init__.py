"""Session resolution: sessions, their store, and the owning users."""

from .manager import SessionManager
from .session import Session
from .store import InMemorySessionStore, SessionStore
from .users import User, UserManager

__all__ = [
    "InMemorySessionStore",
    "Session",
    "SessionManager",
    "SessionStore",
    "User",
    "UserManager",
]
