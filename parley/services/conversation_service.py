"""Conversation service: drives one request from body to closed stream.

The service yields sse-starlette event dicts (see `encode_event`). Frames are
emitted in the order the agent reports its transitions; nothing is buffered.
Every error path ends with exactly one failure frame and a closed stream.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable
from contextlib import aclosing
from enum import Enum
from typing import Any, TypeVar

from pydantic import ValidationError

from parley.agents.base import ChatAgent
from parley.api.schemas import ConversationRequest
from parley.api.sse_protocol import (
    EventFactory,
    MessageResponse,
    PostResponse,
    encode_event,
)
from parley.domain.messages import Message
from parley.domain.status import QueryStatus
from parley.errors import (
    AgentUnavailableError,
    InvalidSessionError,
    PersistenceError,
    SchemaError,
    parse_error,
)
from parley.sessions.manager import SessionManager
from parley.sessions.session import Session
from parley.sessions.users import UserManager
from parley.storage.history import HistoryStore
from parley.utils.logger import api_logger, frame_log

T = TypeVar("T")


class ConversationState(str, Enum):
    AWAITING_REQUEST = "awaiting_request"
    VALIDATING = "validating"
    RESOLVING_SESSION = "resolving_session"
    PERSISTING_USER_MESSAGE = "persisting_user_message"
    STREAMING_AGENT = "streaming_agent"
    SUCCESS_PERSIST = "success_persist"
    ERROR_TERMINAL = "error_terminal"
    CLOSED = "closed"


_TRANSITIONS: dict[ConversationState, frozenset[ConversationState]] = {
    ConversationState.AWAITING_REQUEST: frozenset({ConversationState.VALIDATING}),
    ConversationState.VALIDATING: frozenset({ConversationState.RESOLVING_SESSION}),
    ConversationState.RESOLVING_SESSION: frozenset(
        {ConversationState.PERSISTING_USER_MESSAGE}
    ),
    ConversationState.PERSISTING_USER_MESSAGE: frozenset(
        {ConversationState.STREAMING_AGENT}
    ),
    ConversationState.STREAMING_AGENT: frozenset(
        {ConversationState.SUCCESS_PERSIST, ConversationState.ERROR_TERMINAL}
    ),
    ConversationState.SUCCESS_PERSIST: frozenset(),
    ConversationState.ERROR_TERMINAL: frozenset(),
    ConversationState.CLOSED: frozenset(),
}


class ConversationStream:
    """Request-scoped state of one conversation stream.

    Any state may move to CLOSED; closing twice is a no-op.
    """

    def __init__(self) -> None:
        self.state = ConversationState.AWAITING_REQUEST
        self.session_id: str | None = None
        self.frames_sent = 0

    @property
    def closed(self) -> bool:
        return self.state is ConversationState.CLOSED

    def transition(self, new_state: ConversationState) -> None:
        if new_state is ConversationState.CLOSED:
            self.close()
            return
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal conversation transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    def close(self) -> bool:
        """Move to CLOSED. Returns False when the stream was already closed."""
        if self.closed:
            return False
        self.state = ConversationState.CLOSED
        return True


async def _shielded(awaitable: Awaitable[T]) -> T:
    """Await a persistence write that must finish even if the client leaves."""
    return await asyncio.shield(awaitable)


class ConversationService:
    def __init__(
        self,
        history: HistoryStore,
        session_manager: SessionManager,
        user_manager: UserManager,
    ) -> None:
        self.history = history
        self.session_manager = session_manager
        self.user_manager = user_manager

    def _frame(
        self, stream: ConversationStream, payload: PostResponse
    ) -> dict[str, Any]:
        event = encode_event(payload)
        stream.frames_sent += 1
        frame_log(
            api_logger,
            stream.session_id,
            stream.frames_sent,
            getattr(payload, "type", payload.status),
            event["data"],
        )
        return event

    async def stream_conversation(
        self, body: bytes | str | dict[str, Any], stream: ConversationStream | None = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Run one conversation request and yield its SSE events."""
        stream = stream or ConversationStream()
        try:
            async with aclosing(self._converse(body, stream)) as events:
                async for event in events:
                    yield event
        except asyncio.CancelledError:
            api_logger.info(
                "Conversation stream cancelled by client",
                session_id=stream.session_id,
                state=stream.state.value,
            )
            raise
        except GeneratorExit:
            api_logger.info(
                "Conversation stream closed by client",
                session_id=stream.session_id,
                state=stream.state.value,
            )
            raise
        except Exception as e:
            reason = parse_error(e).reason
            if isinstance(e, SchemaError | InvalidSessionError | AgentUnavailableError):
                api_logger.warning(
                    "Conversation request rejected",
                    reason=reason,
                    session_id=stream.session_id,
                )
            else:
                api_logger.error(
                    "Conversation stream failed",
                    exc_info=True,
                    error=str(e),
                    state=stream.state.value,
                    session_id=stream.session_id,
                )
            if not stream.closed:
                yield self._frame(stream, EventFactory.fail(reason))
        finally:
            if stream.close():
                api_logger.debug(
                    "Conversation stream closed",
                    session_id=stream.session_id,
                    frames=stream.frames_sent,
                )

    def _validate(self, body: bytes | str | dict[str, Any]) -> ConversationRequest:
        try:
            if isinstance(body, dict):
                return ConversationRequest.model_validate(body)
            return ConversationRequest.model_validate_json(body)
        except ValidationError as e:
            raise SchemaError(parse_error(e).reason) from e

    async def _converse(
        self, body: bytes | str | dict[str, Any], stream: ConversationStream
    ) -> AsyncIterator[dict[str, Any]]:
        stream.transition(ConversationState.VALIDATING)
        request = self._validate(body)
        api_logger.info(
            "Conversation request received",
            username=request.username,
            session_id=request.id,
        )

        stream.transition(ConversationState.RESOLVING_SESSION)
        is_new = request.id is None
        if not is_new and not await self.history.has_session(request.id):
            raise InvalidSessionError()
        session = await self.session_manager.get_session(
            request.username, self.user_manager, request.id
        )
        stream.session_id = session.id

        async with self.history.lease(session.id):
            stream.transition(ConversationState.PERSISTING_USER_MESSAGE)
            user_message = request.message.to_message(request.username)
            if is_new:
                await _shielded(self.history.create_session(session.id))
            await _shielded(self.history.append_message(session.id, user_message))

            stream.transition(ConversationState.STREAMING_AGENT)
            if not session.chat_agent.is_chat_enabled():
                raise AgentUnavailableError()

            final_message: Message | None = None
            async with aclosing(self._query(session, user_message)) as payloads:
                async for payload in payloads:
                    yield self._frame(stream, payload)
                    if payload.status == "fail":
                        # Agent ERROR ends the request; no assistant reply is kept
                        stream.transition(ConversationState.ERROR_TERMINAL)
                        return
                    if isinstance(payload, MessageResponse):
                        final_message = payload.message

            stream.transition(ConversationState.SUCCESS_PERSIST)
            if final_message is None:
                api_logger.warning(
                    "Agent finished without a response", session_id=session.id
                )
                return
            try:
                await _shielded(self.history.append_message(session.id, final_message))
            except PersistenceError as e:
                api_logger.error(
                    "Failed to persist assistant message",
                    session_id=session.id,
                    message_id=final_message.id,
                    error=str(e),
                )
                yield self._frame(stream, EventFactory.fail(e.reason))

    async def _query(
        self, session: Session, user_message: Message
    ) -> AsyncIterator[PostResponse]:
        """Translate the agent's transitions into protocol payloads."""
        agent: ChatAgent = session.chat_agent
        agent_input = agent.prepare_input(user_message.content, session.id)
        seen_success = False
        async with aclosing(agent.query(agent_input)) as transitions:
            async for agent_response in transitions:
                if agent_response.status is QueryStatus.SUCCESS:
                    if seen_success:
                        api_logger.warning(
                            "Ignoring duplicate agent success", session_id=session.id
                        )
                        continue
                    seen_success = True
                elif agent_response.status is QueryStatus.ERROR:
                    api_logger.warning(
                        "Agent reported an error",
                        session_id=session.id,
                        error=agent_response.error,
                    )
                yield EventFactory.from_agent_response(session.id, agent_response)
