"""Lifecycle states of a single agent invocation."""

from __future__ import annotations

from enum import Enum


class QueryStatus(str, Enum):
    """Where the agent is in producing one response.

    For one user query an agent yields a finite sequence of these values.
    DONE is terminal; at most one SUCCESS carries the response content, and
    ERROR excludes SUCCESS for the same query.
    """

    PENDING = "pending"  # Queued, not yet running
    STARTED = "started"  # Execution begun
    SUCCESS = "success"  # Result available
    ERROR = "error"  # Execution failed, carries an error value
    DONE = "done"  # Response generation finished

    @property
    def is_terminal(self) -> bool:
        return self is QueryStatus.DONE

    @property
    def is_outcome(self) -> bool:
        """True for the two mutually exclusive per-query outcomes."""
        return self in (QueryStatus.SUCCESS, QueryStatus.ERROR)
