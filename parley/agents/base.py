"""Chat agent interface consumed by the conversation service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass

from pydantic import BaseModel

from parley.domain.messages import Message
from parley.domain.status import QueryStatus


@dataclass(frozen=True)
class AgentInput:
    input: str
    session_id: str


class AgentOutput(BaseModel):
    output: str


class AgentResponse(BaseModel):
    """One state transition reported by an agent."""

    status: QueryStatus
    response: AgentOutput | None = None
    error: str | None = None

    @classmethod
    def pending(cls) -> AgentResponse:
        return cls(status=QueryStatus.PENDING)

    @classmethod
    def started(cls) -> AgentResponse:
        return cls(status=QueryStatus.STARTED)

    @classmethod
    def success(cls, output: str) -> AgentResponse:
        return cls(status=QueryStatus.SUCCESS, response=AgentOutput(output=output))

    @classmethod
    def failed(cls, error: str) -> AgentResponse:
        return cls(status=QueryStatus.ERROR, error=error)

    @classmethod
    def done(cls) -> AgentResponse:
        return cls(status=QueryStatus.DONE)


class ChatAgent(ABC):
    """An agent that answers one user query as a lazy sequence of transitions.

    `query()` returns an async iterator; callers close it (e.g. with
    `contextlib.aclosing`) to cancel an in-flight query.
    """

    @staticmethod
    def prepare_input(content: str, session_id: str) -> AgentInput:
        return AgentInput(input=content, session_id=session_id)

    @abstractmethod
    def is_chat_enabled(self) -> bool:
        """Whether this agent can currently answer queries."""

    @abstractmethod
    def query(self, agent_input: AgentInput) -> AsyncIterator[AgentResponse]:
        """Yield status transitions for one query, ending with DONE."""

    def restore(self, messages: Sequence[Message]) -> None:
        """Load earlier turns of a persisted conversation.

        Called once when a session is rebuilt from history. Agents that keep
        no conversational memory ignore it.
        """
