"""Chat agents: interface, configuration and LangChain implementation."""

from .base import AgentInput, AgentOutput, AgentResponse, ChatAgent
from .chat_agent import LangChainChatAgent
from .config import ChatAgentConfig, LLMType, UserRole
from .factory import AgentFactory, build_chat_model

__all__ = [
    "AgentFactory",
    "AgentInput",
    "AgentOutput",
    "AgentResponse",
    "ChatAgent",
    "ChatAgentConfig",
    "LLMType",
    "LangChainChatAgent",
    "UserRole",
    "build_chat_model",
]
