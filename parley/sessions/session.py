from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from parley.agents.base import ChatAgent
from parley.sessions.users import User


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class Session:
    """A conversational context: an immutable id, its owner and its agent.

    The session references its agent; the agent's lifetime is managed by
    whoever built it.
    """

    id: str
    user: User
    chat_agent: ChatAgent
    created_at: str = field(default_factory=_now_iso)

    @property
    def username(self) -> str:
        return self.user.username
