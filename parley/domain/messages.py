"""Chat message types.

A message is immutable once created. Ordering inside a session is insertion
order; timestamps play no part in it.
"""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict

Role = Literal["user", "assistant"]


class Author(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role


class NewMessage(BaseModel):
    """Inbound message as sent by the client; the server assigns the id."""

    author: Author
    content: str
    username: str | None = None

    def to_message(self, username: str | None = None) -> Message:
        return Message(
            id=new_message_id(),
            author=self.author,
            content=self.content,
            username=self.username if self.username is not None else username,
        )


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    author: Author
    content: str
    username: str | None = None


def new_message_id() -> str:
    return str(uuid.uuid4())
