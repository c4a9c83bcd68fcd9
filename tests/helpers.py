"""Test doubles and SSE decoding helpers shared by the test modules."""

from __future__ import annotations

import asyncio
import json

from parley.agents.base import AgentResponse, ChatAgent
from parley.errors import PersistenceError
from parley.storage import MemoryDatabase


class ScriptedAgent(ChatAgent):
    """Agent that replays a fixed list of transitions.

    An Exception instance in the script is raised at that point instead of
    being yielded.
    """

    def __init__(self, script=None, enabled: bool = True):
        self.script = (
            script
            if script is not None
            else [
                AgentResponse.pending(),
                AgentResponse.started(),
                AgentResponse.success("Hello there"),
                AgentResponse.done(),
            ]
        )
        self.enabled = enabled
        self.inputs = []
        self.consumed = 0
        self.closed = False
        self.restored = None

    def is_chat_enabled(self) -> bool:
        return self.enabled

    def restore(self, messages):
        self.restored = list(messages)

    async def query(self, agent_input):
        self.inputs.append(agent_input)
        try:
            for item in self.script:
                if isinstance(item, Exception):
                    raise item
                self.consumed += 1
                yield item
        finally:
            self.closed = True


class FailingDatabase(MemoryDatabase):
    """Memory database whose Nth write (1-based) raises PersistenceError."""

    def __init__(self, fail_on_write: int, reason: str = "disk full"):
        super().__init__()
        self.fail_on_write = fail_on_write
        self.reason = reason
        self.writes = 0

    async def _write(self, path, value):
        self.writes += 1
        if self.writes == self.fail_on_write:
            raise PersistenceError(self.reason)
        await super()._write(path, value)


class YieldingDatabase(MemoryDatabase):
    """Memory database that suspends on every access to interleave writers."""

    async def _read(self, path):
        await asyncio.sleep(0)
        return await super()._read(path)

    async def _write(self, path, value):
        await asyncio.sleep(0)
        await super()._write(path, value)


def parse_events(events) -> list[dict]:
    """Decode the JSON data of sse-starlette event dicts."""
    return [json.loads(event["data"]) for event in events]


async def collect(stream) -> list[dict]:
    return parse_events([event async for event in stream])


def parse_sse_body(text: str) -> list[dict]:
    """Decode `event: message` frames from a raw SSE response body."""
    payloads = []
    for block in text.replace("\r\n", "\n").split("\n\n"):
        lines = [line for line in block.split("\n") if line and not line.startswith(":")]
        if not lines:
            continue
        assert lines[0] == "event: message"
        data = "".join(line[len("data: ") :] for line in lines[1:])
        payloads.append(json.loads(data))
    return payloads


def signals(payloads: list[dict]) -> list[str]:
    return [p["control"]["signal"] for p in payloads if p.get("type") == "control"]


def conversation_body(content="Hi", username="alice", session_id=None) -> dict:
    body = {"message": {"content": content, "author": {"role": "user"}}, "username": username}
    if session_id is not None:
        body["id"] = session_id
    return body
