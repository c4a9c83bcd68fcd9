"""Tests for the conversation history store."""

import asyncio

import pytest
from helpers import YieldingDatabase

from parley.domain import Author, Message
from parley.storage import (
    HISTORY_SESSION_PATH,
    HISTORY_SESSIONS_PATH,
    HistoryStore,
    MemoryDatabase,
)


def user_message(content: str, message_id: str = None) -> Message:
    kwargs = {"id": message_id} if message_id else {"id": f"id-{content}"}
    return Message(author=Author(role="user"), content=content, username="alice", **kwargs)


@pytest.mark.asyncio
async def test_missing_tables_read_as_empty(history):
    assert await history.read_index() == {}
    assert await history.read_session_table() == {}
    assert await history.read_session("nope") == []
    assert await history.has_session("nope") is False


@pytest.mark.asyncio
async def test_create_session_writes_index_and_empty_log(memory_db, history):
    meta = await history.create_session("s1")

    assert meta.id == "s1"
    assert meta.title == "New Chat"
    assert meta.dateTime.endswith("Z")
    data = memory_db.dump()
    assert data[HISTORY_SESSIONS_PATH]["s1"]["title"] == "New Chat"
    assert data[HISTORY_SESSION_PATH] == {"s1": {"messages": []}}


@pytest.mark.asyncio
async def test_create_session_is_idempotent(history):
    first = await history.create_session("s1")
    await history.append_message("s1", user_message("Hi"))

    second = await history.create_session("s1")

    assert second == first
    assert len(await history.read_session("s1")) == 1


@pytest.mark.asyncio
async def test_message_round_trip(history):
    message = Message(
        id="3f1c", author=Author(role="assistant"), content="Ça va? 👋", username=""
    )
    await history.create_session("s1")

    await history.append_message("s1", message)

    assert await history.read_session("s1") == [message]


@pytest.mark.asyncio
async def test_messages_keep_insertion_order(history):
    await history.create_session("s1")
    for content in ["one", "two", "three"]:
        await history.append_message("s1", user_message(content))

    assert [m.content for m in await history.read_session("s1")] == [
        "one",
        "two",
        "three",
    ]


@pytest.mark.asyncio
async def test_list_sessions_newest_first():
    db = MemoryDatabase(
        {
            HISTORY_SESSIONS_PATH: {
                "a": {"id": "a", "dateTime": "2024-01-01T00:00:00Z", "title": "New Chat"},
                "b": {"id": "b", "dateTime": "2024-06-01T00:00:00Z", "title": "New Chat"},
            }
        }
    )

    sessions = await HistoryStore(db).list_sessions()

    assert [s.id for s in sessions] == ["b", "a"]


@pytest.mark.asyncio
async def test_concurrent_appends_across_sessions_are_not_lost():
    history = HistoryStore(YieldingDatabase())
    session_ids = [f"s{i}" for i in range(5)]
    await asyncio.gather(*(history.create_session(sid) for sid in session_ids))

    await asyncio.gather(
        *(
            history.append_message(sid, user_message(f"{sid}-{n}"))
            for sid in session_ids
            for n in range(3)
        )
    )

    assert set(await history.read_index()) == set(session_ids)
    for sid in session_ids:
        contents = [m.content for m in await history.read_session(sid)]
        assert contents == [f"{sid}-0", f"{sid}-1", f"{sid}-2"]


@pytest.mark.asyncio
async def test_lease_serializes_one_session(history):
    order = []

    async def hold(tag):
        async with history.lease("s1"):
            order.append(f"{tag}-in")
            await asyncio.sleep(0.01)
            order.append(f"{tag}-out")

    await asyncio.gather(hold("a"), hold("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_reconcile_repairs_index_without_log():
    db = MemoryDatabase(
        {
            HISTORY_SESSIONS_PATH: {
                "ok": {"id": "ok", "dateTime": "2024-01-01T00:00:00Z", "title": "New Chat"},
                "gap": {"id": "gap", "dateTime": "2024-01-02T00:00:00Z", "title": "New Chat"},
            },
            HISTORY_SESSION_PATH: {
                "ok": {"messages": []},
                "orphan": {"messages": []},
            },
        }
    )
    history = HistoryStore(db)

    report = await history.reconcile()

    assert report.repaired == ["gap"]
    assert report.orphaned == ["orphan"]
    assert await history.read_session("gap") == []
    assert "gap" in db.dump()[HISTORY_SESSION_PATH]
    assert "orphan" in db.dump()[HISTORY_SESSION_PATH]

    second = await history.reconcile()
    assert second.repaired == []
