"""Session storage abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod

from parley.sessions.session import Session


class SessionStore(ABC):
    """Get/put/delete sessions by id.

    Implementations backed by an external store let several server processes
    share sessions.
    """

    @abstractmethod
    async def get(self, session_id: str) -> Session | None:
        pass

    @abstractmethod
    async def put(self, session: Session) -> None:
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        pass


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    async def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    async def put(self, session: Session) -> None:
        self._sessions[session.id] = session

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
