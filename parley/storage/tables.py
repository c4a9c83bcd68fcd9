"""SQLite table behind SQLiteDatabase: one compressed JSON document per key path."""

from __future__ import annotations

import zlib

from sqlalchemy import LargeBinary, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    pass


class ZlibJSON(TypeDecorator):
    """JSON text stored zlib-compressed."""

    impl = LargeBinary
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return zlib.compress(value.encode("utf-8"), level=6)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return zlib.decompress(value).decode("utf-8")


class Document(Base):
    __tablename__ = "documents"

    path: Mapped[str] = mapped_column(String, primary_key=True)
    body: Mapped[str] = mapped_column(ZlibJSON)
    updated_at: Mapped[str] = mapped_column(String)
