"""Tests for the conversation SSE protocol codec."""

import json

import pytest
from pydantic import ValidationError

from parley.agents.base import AgentResponse
from parley.api.sse_protocol import (
    ControlSignal,
    EventFactory,
    encode_event,
    format_frame,
    validate_event,
)
from parley.domain import Author, Message


def test_fail_frame_exact_wire_text():
    frame = format_frame(EventFactory.fail("Invalid session ID"))

    assert frame == (
        "event: message\n"
        'data: {"status": "fail", "reason": "Invalid session ID"}\n'
        "\n"
    )


def test_control_frame_exact_wire_text():
    frame = format_frame(EventFactory.control("s1", ControlSignal.GENERATION_DONE))

    assert frame == (
        "event: message\n"
        'data: {"status": "success", "id": "s1", "type": "control", '
        '"control": {"signal": "generation-done"}}\n'
        "\n"
    )


def test_encode_event_returns_sse_starlette_dict():
    message = Message(id="m1", author=Author(role="user"), content="Hi")

    event = encode_event(EventFactory.message("s1", message))

    assert event["event"] == "message"
    assert json.loads(event["data"]) == {
        "status": "success",
        "id": "s1",
        "type": "message",
        "message": {"id": "m1", "author": {"role": "user"}, "content": "Hi"},
    }


def test_non_ascii_is_kept_verbatim():
    frame = format_frame(EventFactory.fail("Ungültige Sitzung"))

    assert "Ungültige Sitzung" in frame


@pytest.mark.parametrize(
    "payload",
    [
        {"status": "success", "id": "s1", "type": "control", "control": {"signal": "generation-paused"}},
        {"status": "success", "type": "control", "control": {"signal": "generation-done"}},
        {"status": "success", "id": "", "type": "control", "control": {"signal": "generation-done"}},
        {"status": "fail"},
        {"status": "fail", "reason": "x", "stack": "Traceback"},
        {"status": "ok", "reason": "x"},
    ],
)
def test_invalid_payloads_are_rejected(payload):
    with pytest.raises(ValidationError):
        validate_event(payload)


def test_from_agent_response_maps_statuses():
    cases = {
        "pending": "generation-pending",
        "started": "generation-started",
        "done": "generation-done",
    }
    for status, signal in cases.items():
        payload = EventFactory.from_agent_response("s1", AgentResponse(status=status))
        assert payload.control.signal.value == signal
        assert payload.id == "s1"


def test_from_agent_response_success_builds_assistant_message():
    first = EventFactory.from_agent_response("s1", AgentResponse.success("Answer"))
    second = EventFactory.from_agent_response("s1", AgentResponse.success("Answer"))

    assert first.type == "message"
    assert first.message.author.role == "assistant"
    assert first.message.content == "Answer"
    assert first.message.username == ""
    assert first.message.id != second.message.id


def test_from_agent_response_error_carries_reason():
    payload = EventFactory.from_agent_response("s1", AgentResponse.failed("boom"))

    assert payload.status == "fail"
    assert payload.reason == "boom"


def test_from_agent_response_success_without_output_is_invalid():
    with pytest.raises(ValidationError):
        EventFactory.from_agent_response("s1", AgentResponse(status="success"))
