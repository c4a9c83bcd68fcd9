"""Error taxonomy for the conversation protocol.

Every error that reaches a client is reduced to one human-readable reason by
`parse_error`; exception types and stack traces stay on the server side.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError


class ParleyError(Exception):
    """Base class for errors that carry a client-facing reason."""

    default_reason = "Internal server error"

    def __init__(self, reason: str | None = None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class SchemaError(ParleyError):
    """Malformed client input."""

    default_reason = "Invalid request"


class InvalidSessionError(ParleyError):
    """The client referenced a session id that is not in the history index."""

    default_reason = "Invalid session ID"


class AgentUnavailableError(ParleyError):
    """Chat capability is disabled for the resolved session."""

    default_reason = "Chat agent is not available"


class AgentExecutionError(ParleyError):
    """The agent reported an ERROR transition."""

    default_reason = "Chat agent failed to respond"


class PersistenceError(ParleyError):
    """A history table could not be read or written."""

    default_reason = "Failed to access conversation history"


@dataclass(frozen=True)
class ErrorReason:
    reason: str


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ()) if p != "__root__")
        msg = item.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid payload"


def parse_error(error: BaseException) -> ErrorReason:
    """Reduce any exception to a single client-facing reason string."""
    if isinstance(error, ParleyError):
        return ErrorReason(reason=error.reason)
    if isinstance(error, ValidationError):
        return ErrorReason(reason=_format_validation_error(error))
    message = str(error).strip()
    return ErrorReason(reason=message or type(error).__name__)
