"""Chat agent configuration.

Every supported option is declared here; unknown keys are rejected when the
configuration is built.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LLMType(str, Enum):
    OPENAI = "openai"
    FAKE = "fake"  # Canned responses, no network access


class UserRole(str, Enum):
    STUDENT = "student"
    FACULTY_MEMBER = "faculty member"


DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_FAKE_RESPONSES = ["Hello! How can I help you today?"]


class ChatAgentConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=False)

    enabled: bool = True
    llm_type: LLMType = LLMType.OPENAI
    model: str = DEFAULT_OPENAI_MODEL
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    user_role: UserRole | None = None
    initial_prompt: str | None = None
    remember_history: bool = True
    # Only used by LLMType.FAKE
    fake_responses: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FAKE_RESPONSES), min_length=1
    )
    verbose: bool = False

    def is_usable(self) -> bool:
        """Whether an agent built from this config can answer queries."""
        if not self.enabled:
            return False
        if self.llm_type is LLMType.OPENAI:
            return bool(self.api_key)
        return True
