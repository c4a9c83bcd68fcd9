"""Conversation streaming protocol: payload shapes and SSE framing.

Every frame is an SSE block of the form::

    event: message
    data: {"status": "success", ...}
    <blank line>

Payloads are discriminated by `status` ("success" | "fail") and, for
successes, by `type` ("message" | "control"). Each payload is validated
before it is encoded; a non-conforming payload raises
`pydantic.ValidationError`.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from sse_starlette.sse import ServerSentEvent

from parley.agents.base import AgentResponse
from parley.domain.messages import Message, new_message_id
from parley.domain.status import QueryStatus

SSE_EVENT_NAME = "message"
SSE_SEPARATOR = "\n"


class ControlSignal(str, Enum):
    GENERATION_PENDING = "generation-pending"
    GENERATION_STARTED = "generation-started"
    GENERATION_DONE = "generation-done"


STATUS_SIGNALS: dict[QueryStatus, ControlSignal] = {
    QueryStatus.PENDING: ControlSignal.GENERATION_PENDING,
    QueryStatus.STARTED: ControlSignal.GENERATION_STARTED,
    QueryStatus.DONE: ControlSignal.GENERATION_DONE,
}


class Control(BaseModel):
    model_config = ConfigDict(extra="forbid")

    signal: ControlSignal


class MessageResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["success"] = "success"
    id: str = Field(min_length=1)
    type: Literal["message"] = "message"
    message: Message


class ControlResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["success"] = "success"
    id: str = Field(min_length=1)
    type: Literal["control"] = "control"
    control: Control


class FailResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["fail"] = "fail"
    reason: str


PostResponse = Union[MessageResponse, ControlResponse, FailResponse]

_post_response_adapter: TypeAdapter[PostResponse] = TypeAdapter(PostResponse)


def validate_event(payload: PostResponse | dict[str, Any]) -> PostResponse:
    """Validate a payload against the protocol schema."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", exclude_none=True)
    return _post_response_adapter.validate_python(payload)


def event_to_json(payload: PostResponse | dict[str, Any]) -> str:
    event = validate_event(payload)
    return json.dumps(
        event.model_dump(mode="json", exclude_none=True), ensure_ascii=False
    )


def encode_event(payload: PostResponse | dict[str, Any]) -> dict[str, str]:
    """Encode a payload as an sse-starlette event dict."""
    return {"event": SSE_EVENT_NAME, "data": event_to_json(payload)}


def format_frame(payload: PostResponse | dict[str, Any]) -> str:
    """Render the exact wire text of one frame."""
    frame = ServerSentEvent(
        data=event_to_json(payload), event=SSE_EVENT_NAME, sep=SSE_SEPARATOR
    )
    return frame.encode().decode("utf-8")


class EventFactory:
    @staticmethod
    def message(session_id: str, message: Message) -> MessageResponse:
        return MessageResponse.model_validate(
            {"id": session_id, "message": message.model_dump(mode="json")}
        )

    @staticmethod
    def control(session_id: str, signal: ControlSignal | str) -> ControlResponse:
        return ControlResponse.model_validate(
            {"id": session_id, "control": {"signal": signal}}
        )

    @staticmethod
    def fail(reason: str) -> FailResponse:
        return FailResponse(reason=reason)

    @staticmethod
    def from_agent_response(
        session_id: str, agent_response: AgentResponse
    ) -> PostResponse:
        """Translate one agent transition into its protocol payload."""
        status = agent_response.status
        if status in STATUS_SIGNALS:
            return EventFactory.control(session_id, STATUS_SIGNALS[status])
        if status is QueryStatus.ERROR:
            return EventFactory.fail(str(agent_response.error))
        # SUCCESS: a missing response fails message validation
        output = agent_response.response.output if agent_response.response else None
        return MessageResponse.model_validate(
            {
                "id": session_id,
                "message": {
                    "id": new_message_id(),
                    "username": "",
                    "content": output,
                    "author": {"role": "assistant"},
                },
            }
        )
