"""LangChain-backed chat agent."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence

from langchain_core.chat_history import InMemoryChatMessageHistory
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from parley.agents.base import AgentInput, AgentResponse, ChatAgent
from parley.agents.config import ChatAgentConfig, UserRole
from parley.domain.messages import Message
from parley.utils.logger import agent_logger

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer clearly and concisely, and say so "
    "when you do not know something."
)


def build_system_prompt(config: ChatAgentConfig) -> str:
    prompt = config.initial_prompt or DEFAULT_SYSTEM_PROMPT
    if config.user_role is UserRole.STUDENT:
        prompt += "\nThe user is a student."
    elif config.user_role is UserRole.FACULTY_MEMBER:
        prompt += "\nThe user is a faculty member."
    return prompt


def content_to_text(content: str | list) -> str:
    """Flatten LangChain message content (string or content blocks) to text."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


class LangChainChatAgent(ChatAgent):
    """Answers queries with a LangChain chat model.

    Queries against one agent run one at a time: a query reports PENDING
    while it waits for the previous one and STARTED once it holds the model.
    """

    def __init__(
        self,
        llm: BaseChatModel | None,
        config: ChatAgentConfig,
        session_id: str,
    ):
        self.llm = llm
        self.config = config
        self.session_id = session_id
        self.system_prompt = build_system_prompt(config)
        self._history = (
            InMemoryChatMessageHistory() if config.remember_history else None
        )
        self._lock = asyncio.Lock()

    def is_chat_enabled(self) -> bool:
        return self.llm is not None and self.config.is_usable()

    def restore(self, messages: Sequence[Message]) -> None:
        if self._history is None:
            return
        self._history.clear()
        self._history.add_messages(
            [
                HumanMessage(content=m.content)
                if m.author.role == "user"
                else AIMessage(content=m.content)
                for m in messages
            ]
        )
        agent_logger.debug(
            "Conversation restored", session_id=self.session_id, turns=len(messages)
        )

    def _build_messages(self, text: str) -> list[BaseMessage]:
        messages: list[BaseMessage] = [SystemMessage(content=self.system_prompt)]
        if self._history is not None:
            messages.extend(self._history.messages)
        messages.append(HumanMessage(content=text))
        return messages

    async def query(self, agent_input: AgentInput) -> AsyncIterator[AgentResponse]:
        if self.llm is None:
            yield AgentResponse.failed("Chat model is not configured")
            yield AgentResponse.done()
            return

        yield AgentResponse.pending()
        async with self._lock:
            yield AgentResponse.started()
            messages = self._build_messages(agent_input.input)
            if self.config.verbose:
                agent_logger.debug(
                    "Invoking chat model",
                    session_id=agent_input.session_id,
                    message_count=len(messages),
                )
            try:
                result = await self.llm.ainvoke(messages)
            except Exception as e:
                agent_logger.error(
                    "Chat model invocation failed",
                    session_id=agent_input.session_id,
                    error=str(e),
                    exc_info=True,
                )
                yield AgentResponse.failed(str(e) or type(e).__name__)
            else:
                output = content_to_text(result.content)
                if self._history is not None:
                    self._history.add_messages(
                        [HumanMessage(content=agent_input.input), AIMessage(content=output)]
                    )
                yield AgentResponse.success(output)
        yield AgentResponse.done()
