"""Build chat agents from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.language_models import BaseChatModel
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from parley.agents.base import ChatAgent
from parley.agents.chat_agent import LangChainChatAgent
from parley.agents.config import ChatAgentConfig, LLMType
from parley.utils.logger import agent_logger

if TYPE_CHECKING:
    from parley.sessions.users import User


def build_chat_model(config: ChatAgentConfig) -> BaseChatModel | None:
    """Return the chat model for `config`, or None when it cannot be used."""
    if not config.is_usable():
        return None
    if config.llm_type is LLMType.FAKE:
        return FakeListChatModel(responses=list(config.fake_responses))

    from langchain_openai import ChatOpenAI

    kwargs: dict = {
        "model": config.model,
        "api_key": config.api_key,
        "temperature": config.temperature,
    }
    if config.base_url:
        kwargs["base_url"] = config.base_url
    if config.max_tokens:
        kwargs["max_tokens"] = config.max_tokens
    return ChatOpenAI(**kwargs)


class AgentFactory:
    """Creates one agent per session from the current agent configuration.

    The configuration is read lazily and cached until `invalidate()` is
    called (on config file changes).
    """

    def __init__(self, config_loader):
        self._config_loader = config_loader
        self._config: ChatAgentConfig | None = None

    @property
    def config(self) -> ChatAgentConfig:
        if self._config is None:
            self._config = self._config_loader()
        return self._config

    def invalidate(self) -> None:
        agent_logger.info("Invalidating cached agent configuration")
        self._config = None

    def __call__(self, session_id: str, user: User | None = None) -> ChatAgent:
        config = self.config
        if user is not None and user.role is not None:
            config = config.model_copy(update={"user_role": user.role})
        llm = build_chat_model(config)
        if llm is None:
            agent_logger.warning(
                "Chat agent created without a usable model",
                session_id=session_id,
                llm_type=config.llm_type.value,
                enabled=config.enabled,
            )
        return LangChainChatAgent(llm, config, session_id)
