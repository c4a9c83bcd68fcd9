"""Persisted history table shapes."""

from __future__ import annotations

from pydantic import BaseModel, Field, TypeAdapter

from parley.domain.messages import Message

HISTORY_SESSIONS_PATH = "chatHistory/historySessions"
HISTORY_SESSION_PATH = "chatHistory/historySession"
DEFAULT_SESSION_TITLE = "New Chat"


class HistorySessionMeta(BaseModel):
    """Index entry summarizing one session."""

    id: str
    dateTime: str  # ISO-8601, UTC
    title: str = DEFAULT_SESSION_TITLE


class HistorySessionLog(BaseModel):
    messages: list[Message] = Field(default_factory=list)


HistorySessionsTable = dict[str, HistorySessionMeta]
HistorySessionTable = dict[str, HistorySessionLog]

HistorySessionsModelSchema: TypeAdapter[HistorySessionsTable] = TypeAdapter(
    HistorySessionsTable
)
HistorySessionModelSchema: TypeAdapter[HistorySessionTable] = TypeAdapter(
    HistorySessionTable
)
