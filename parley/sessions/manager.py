"""Map a client-supplied session id (or its absence) to a Session."""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable

from parley.agents.base import ChatAgent
from parley.domain.messages import Message
from parley.sessions.session import Session
from parley.sessions.store import InMemorySessionStore, SessionStore
from parley.sessions.users import User, UserManager
from parley.utils.logger import get_logger

logger = get_logger("parley.sessions")

MAX_ID_ATTEMPTS = 5

HistoryLoader = Callable[[str], Awaitable[list[Message]]]


class SessionManager:
    """Creates and looks up sessions.

    The manager does not validate ids: the caller checks a client-supplied
    id against the history index before calling `get_session`. Resolution
    only reads history, and only to restore a rehydrated session.
    """

    def __init__(
        self,
        agent_factory: Callable[[str, User], ChatAgent],
        store: SessionStore | None = None,
        history_loader: HistoryLoader | None = None,
    ):
        self.agent_factory = agent_factory
        self.store = store if store is not None else InMemorySessionStore()
        self.history_loader = history_loader

    async def _new_session_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            session_id = uuid.uuid4().hex
            if await self.store.get(session_id) is None:
                return session_id
        raise RuntimeError("Create new session failed: session id conflict")

    async def get_session(
        self, username: str, user_manager: UserManager, id: str | None = None
    ) -> Session:
        """Return the session for `id`, creating one when `id` is None.

        A known id missing from the store (e.g. after a restart) is
        rehydrated with a fresh agent, which is given the persisted
        conversation when a `history_loader` is set.
        """
        user = user_manager.get_user(username)
        if id is not None:
            session = await self.store.get(id)
            if session is not None:
                return session
            agent = self.agent_factory(id, user)
            restored = 0
            if self.history_loader is not None:
                messages = await self.history_loader(id)
                agent.restore(messages)
                restored = len(messages)
            session = Session(id=id, user=user, chat_agent=agent)
            await self.store.put(session)
            logger.info(
                "Session rehydrated",
                session_id=id,
                username=username,
                restored_messages=restored,
            )
            return session

        session_id = await self._new_session_id()
        session = Session(
            id=session_id, user=user, chat_agent=self.agent_factory(session_id, user)
        )
        await self.store.put(session)
        logger.info("Session created", session_id=session_id, username=username)
        return session

    async def delete_session(self, session_id: str) -> None:
        await self.store.delete(session_id)
