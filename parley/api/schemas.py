"""API request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from parley.domain.messages import Message, NewMessage
from parley.storage.models import HistorySessionMeta


class ConversationRequest(BaseModel):
    message: NewMessage
    username: str = Field(min_length=1)
    id: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def empty_id_means_new_session(cls, value):
        return None if value == "" else value


class HistoryListResponse(BaseModel):
    sessions: list[HistorySessionMeta]
    total: int


class HistorySessionResponse(BaseModel):
    id: str
    title: str | None = None
    dateTime: str | None = None
    messages: list[Message] = []


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "parley-server"
    version: str | None = None
    agent_enabled: bool | None = None
    config_valid: bool | None = None
    config_errors: list[str] | None = None  # Present only when invalid
