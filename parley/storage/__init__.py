"""Persistence: key-path database and the conversation history adapter."""

from .database import Database, MemoryDatabase, SQLiteDatabase
from .history import HistoryStore, ReconcileReport
from .models import (
    DEFAULT_SESSION_TITLE,
    HISTORY_SESSION_PATH,
    HISTORY_SESSIONS_PATH,
    HistorySessionLog,
    HistorySessionMeta,
    HistorySessionModelSchema,
    HistorySessionsModelSchema,
)

__all__ = [
    "DEFAULT_SESSION_TITLE",
    "Database",
    "HISTORY_SESSION_PATH",
    "HISTORY_SESSIONS_PATH",
    "HistorySessionLog",
    "HistorySessionMeta",
    "HistorySessionModelSchema",
    "HistorySessionsModelSchema",
    "HistoryStore",
    "MemoryDatabase",
    "ReconcileReport",
    "SQLiteDatabase",
]
