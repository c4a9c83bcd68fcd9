"""Key-path document database with schema-validated whole-value replace.

`get(path, schema)` returns the full table stored at `path`;
`set(path, table, schema)` replaces it. There is no partial update and no
multi-key transaction: each `set` is atomic for its own key only.
"""

from __future__ import annotations

import asyncio
import copy
import json
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from parley.errors import PersistenceError
from parley.storage.tables import Base, Document
from parley.utils.logger import storage_logger

T = TypeVar("T")


class Database(ABC):
    """Abstract key-path database."""

    async def get(self, path: str, schema: TypeAdapter[T]) -> T:
        raw = await self._read(path)
        try:
            return schema.validate_python(raw if raw is not None else {})
        except ValidationError as e:
            storage_logger.error("Stored table failed validation", path=path, error=str(e))
            raise PersistenceError(f"Stored data at {path} is invalid") from e

    async def set(self, path: str, table: T, schema: TypeAdapter[T]) -> None:
        try:
            validated = schema.validate_python(table)
        except ValidationError as e:
            storage_logger.error("Refusing to store invalid table", path=path, error=str(e))
            raise PersistenceError(f"Refusing to store invalid data at {path}") from e
        await self._write(path, schema.dump_python(validated, mode="json", exclude_none=True))

    @abstractmethod
    async def _read(self, path: str) -> Any | None:
        """Return the raw JSON-compatible value at path, or None if missing."""

    @abstractmethod
    async def _write(self, path: str, value: Any) -> None:
        """Replace the raw JSON-compatible value at path."""

    def close(self) -> None:
        """Release resources held by the database."""


class MemoryDatabase(Database):
    """In-process database; values are deep-copied on every read and write."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    async def _read(self, path: str) -> Any | None:
        value = self._data.get(path)
        return copy.deepcopy(value) if value is not None else None

    async def _write(self, path: str, value: Any) -> None:
        self._data[path] = copy.deepcopy(value)

    def dump(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


class SQLiteDatabase(Database):
    """SQLite-backed database storing one compressed JSON document per path."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        # Reads and writes run on worker threads via asyncio.to_thread
        self._engine = create_engine(
            f"sqlite+pysqlite:///{db_path}",
            connect_args={"check_same_thread": False},
        )
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)
        storage_logger.info("History database ready", path=str(db_path))

    def _read_sync(self, path: str) -> Any | None:
        with self._sessions() as session:
            document = session.get(Document, path)
            return None if document is None else json.loads(document.body)

    def _write_sync(self, path: str, value: Any) -> None:
        now = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        data = json.dumps(value, ensure_ascii=False)
        with self._sessions.begin() as session:
            session.merge(Document(path=path, body=data, updated_at=now))

    async def _read(self, path: str) -> Any | None:
        try:
            return await asyncio.to_thread(self._read_sync, path)
        except (SQLAlchemyError, json.JSONDecodeError) as e:
            storage_logger.error("Database read failed", path=path, exc_info=True)
            raise PersistenceError(f"Failed to read {path}") from e

    async def _write(self, path: str, value: Any) -> None:
        try:
            await asyncio.to_thread(self._write_sync, path, value)
        except SQLAlchemyError as e:
            storage_logger.error("Database write failed", path=path, exc_info=True)
            raise PersistenceError(f"Failed to write {path}") from e

    def close(self) -> None:
        self._engine.dispose()
