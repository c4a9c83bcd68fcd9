"""Conversation history over two whole-table records.

Storage layout (key paths in the `Database`):
- `chatHistory/historySessions`: session id -> {id, dateTime, title}
- `chatHistory/historySession`: session id -> {messages: [...]}

Every mutation reads the full table, changes it in memory and writes the
full table back. The two tables are written separately, so a crash between
the index write and the log write can leave an index entry whose log lags
behind; `reconcile()` detects and repairs missing logs but cannot recover a
lost message.

Read-modify-write cycles on one table are serialized by an in-process lock.
Writers in other processes are not coordinated.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime

from parley.domain.messages import Message
from parley.storage.database import Database
from parley.storage.models import (
    DEFAULT_SESSION_TITLE,
    HISTORY_SESSION_PATH,
    HISTORY_SESSIONS_PATH,
    HistorySessionLog,
    HistorySessionMeta,
    HistorySessionModelSchema,
    HistorySessionsModelSchema,
    HistorySessionsTable,
    HistorySessionTable,
)
from parley.utils.logger import storage_logger


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class ReconcileReport:
    repaired: list[str] = field(default_factory=list)  # index entries given an empty log
    orphaned: list[str] = field(default_factory=list)  # logs with no index entry


class HistoryStore:
    def __init__(self, database: Database):
        self.database = database
        self._index_lock = asyncio.Lock()
        self._sessions_lock = asyncio.Lock()
        self._leases: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # ---- Whole-table access ----
    async def read_index(self) -> HistorySessionsTable:
        return await self.database.get(HISTORY_SESSIONS_PATH, HistorySessionsModelSchema)

    async def read_session_table(self) -> HistorySessionTable:
        return await self.database.get(HISTORY_SESSION_PATH, HistorySessionModelSchema)

    async def write_index(self, table: HistorySessionsTable) -> None:
        await self.database.set(HISTORY_SESSIONS_PATH, table, HistorySessionsModelSchema)

    async def write_session_table(self, table: HistorySessionTable) -> None:
        await self.database.set(HISTORY_SESSION_PATH, table, HistorySessionModelSchema)

    # ---- Per-session views ----
    async def has_session(self, session_id: str) -> bool:
        index = await self.read_index()
        return session_id in index

    async def get_meta(self, session_id: str) -> HistorySessionMeta | None:
        index = await self.read_index()
        return index.get(session_id)

    async def read_session(self, session_id: str) -> list[Message]:
        """Messages of one session in insertion order (empty if none)."""
        table = await self.read_session_table()
        log = table.get(session_id)
        return list(log.messages) if log else []

    async def list_sessions(self) -> list[HistorySessionMeta]:
        """Index entries, newest first."""
        index = await self.read_index()
        return sorted(index.values(), key=lambda meta: meta.dateTime, reverse=True)

    # ---- Mutations ----
    async def create_session(
        self, session_id: str, title: str = DEFAULT_SESSION_TITLE
    ) -> HistorySessionMeta:
        """Insert the index entry and an empty log for a new session.

        The index is written before the log.
        """
        async with self._index_lock, self._sessions_lock:
            index = await self.read_index()
            sessions = await self.read_session_table()
            meta = index.get(session_id)
            if meta is None:
                meta = HistorySessionMeta(id=session_id, dateTime=_now_iso(), title=title)
                index[session_id] = meta
            sessions.setdefault(session_id, HistorySessionLog())
            await self.write_index(index)
            await self.write_session_table(sessions)
        storage_logger.debug("History session created", session_id=session_id)
        return meta

    async def append_message(self, session_id: str, message: Message) -> None:
        async with self._sessions_lock:
            sessions = await self.read_session_table()
            log = sessions.setdefault(session_id, HistorySessionLog())
            log.messages.append(message)
            await self.write_session_table(sessions)
        storage_logger.debug(
            "Message appended",
            session_id=session_id,
            message_id=message.id,
            role=message.author.role,
        )

    @asynccontextmanager
    async def lease(self, session_id: str) -> AsyncIterator[None]:
        """Hold the single-writer lease for one session id (in-process)."""
        lock = self._leases.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._leases[session_id] = lock
        async with lock:
            yield

    async def reconcile(self) -> ReconcileReport:
        """Give every indexed session a log and report logs without an index entry."""
        report = ReconcileReport()
        async with self._index_lock, self._sessions_lock:
            index = await self.read_index()
            sessions = await self.read_session_table()
            for session_id in index:
                if session_id not in sessions:
                    sessions[session_id] = HistorySessionLog()
                    report.repaired.append(session_id)
            report.orphaned = [sid for sid in sessions if sid not in index]
            if report.repaired:
                await self.write_session_table(sessions)

        if report.repaired:
            storage_logger.warning(
                "Repaired history sessions without a message log",
                session_ids=report.repaired,
            )
        if report.orphaned:
            storage_logger.warning(
                "Found message logs without an index entry",
                session_ids=report.orphaned,
            )
        return report
