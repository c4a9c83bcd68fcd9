"""Tests for query status and error reason extraction."""

from pydantic import BaseModel, ValidationError

from parley.domain import QueryStatus
from parley.errors import (
    AgentUnavailableError,
    InvalidSessionError,
    PersistenceError,
    SchemaError,
    parse_error,
)


def test_query_status_values():
    assert [s.value for s in QueryStatus] == [
        "pending",
        "started",
        "success",
        "error",
        "done",
    ]


def test_only_done_is_terminal():
    assert [s for s in QueryStatus if s.is_terminal] == [QueryStatus.DONE]
    assert {s for s in QueryStatus if s.is_outcome} == {
        QueryStatus.SUCCESS,
        QueryStatus.ERROR,
    }


def test_parse_error_uses_default_reasons():
    assert parse_error(InvalidSessionError()).reason == "Invalid session ID"
    assert parse_error(AgentUnavailableError()).reason == "Chat agent is not available"
    assert parse_error(SchemaError("username: Field required")).reason == (
        "username: Field required"
    )
    assert parse_error(PersistenceError()).reason == (
        "Failed to access conversation history"
    )


def test_parse_error_formats_validation_errors():
    class Body(BaseModel):
        username: str
        count: int

    try:
        Body.model_validate({"count": "many"})
    except ValidationError as e:
        reason = parse_error(e).reason

    assert "username: Field required" in reason
    assert "count: " in reason


def test_parse_error_never_exposes_type_for_non_empty_message():
    assert parse_error(RuntimeError("upstream timeout")).reason == "upstream timeout"
    assert parse_error(KeyError()).reason == "KeyError"
