"""Tests for the LangChain-backed chat agent and its factory."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage

from parley.agents import (
    AgentFactory,
    ChatAgentConfig,
    LangChainChatAgent,
    LLMType,
    UserRole,
    build_chat_model,
)
from parley.agents.chat_agent import build_system_prompt, content_to_text
from parley.domain import QueryStatus
from parley.domain.messages import Author, Message
from parley.sessions import User


def fake_config(**overrides):
    return ChatAgentConfig(llm_type=LLMType.FAKE, **overrides)


async def run(agent, text="Hi", session_id="s1"):
    return [r async for r in agent.query(agent.prepare_input(text, session_id))]


@pytest.mark.asyncio
async def test_query_reports_lifecycle_and_output():
    config = fake_config(fake_responses=["Hello!"])
    agent = LangChainChatAgent(build_chat_model(config), config, "s1")

    responses = await run(agent)

    assert [r.status for r in responses] == [
        QueryStatus.PENDING,
        QueryStatus.STARTED,
        QueryStatus.SUCCESS,
        QueryStatus.DONE,
    ]
    assert responses[2].response.output == "Hello!"


@pytest.mark.asyncio
async def test_history_is_sent_on_later_queries():
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=MagicMock(content="ok"))
    agent = LangChainChatAgent(llm, fake_config(), "s1")

    await run(agent, "first")
    await run(agent, "second")

    sent = llm.ainvoke.await_args_list[1].args[0]
    assert [m.content for m in sent[1:]] == ["first", "ok", "second"]


@pytest.mark.asyncio
async def test_restored_conversation_precedes_new_query():
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=MagicMock(content="ok"))
    agent = LangChainChatAgent(llm, fake_config(), "s1")
    earlier = [
        Message(id="m1", author=Author(role="user"), content="my name is Ada"),
        Message(id="m2", author=Author(role="assistant"), content="Hi Ada", username=""),
    ]

    agent.restore(earlier)
    await run(agent, "what is my name?")

    sent = llm.ainvoke.await_args.args[0]
    assert [type(m) for m in sent[1:]] == [HumanMessage, AIMessage, HumanMessage]
    assert [m.content for m in sent[1:]] == [
        "my name is Ada",
        "Hi Ada",
        "what is my name?",
    ]


@pytest.mark.asyncio
async def test_history_can_be_disabled():
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=MagicMock(content="ok"))
    agent = LangChainChatAgent(llm, fake_config(remember_history=False), "s1")

    await run(agent, "first")
    await run(agent, "second")

    assert len(llm.ainvoke.await_args_list[1].args[0]) == 2


@pytest.mark.asyncio
async def test_model_failure_becomes_error_transition():
    llm = MagicMock()
    llm.ainvoke = AsyncMock(side_effect=RuntimeError("rate limited"))
    agent = LangChainChatAgent(llm, fake_config(), "s1")

    responses = await run(agent)

    statuses = [r.status for r in responses]
    assert QueryStatus.SUCCESS not in statuses
    assert statuses[-2:] == [QueryStatus.ERROR, QueryStatus.DONE]
    assert responses[-2].error == "rate limited"


@pytest.mark.asyncio
async def test_agent_without_model_is_disabled():
    agent = LangChainChatAgent(None, ChatAgentConfig(), "s1")

    assert agent.is_chat_enabled() is False
    responses = await run(agent)
    assert [r.status for r in responses] == [QueryStatus.ERROR, QueryStatus.DONE]


def test_build_chat_model_respects_config():
    assert isinstance(build_chat_model(fake_config()), FakeListChatModel)
    assert build_chat_model(ChatAgentConfig(api_key=None)) is None
    assert build_chat_model(fake_config(enabled=False)) is None


def test_factory_applies_user_role_and_caches_config():
    loader = MagicMock(return_value=fake_config())
    factory = AgentFactory(loader)

    agent = factory("s1", User("ann", UserRole.FACULTY_MEMBER))
    factory("s2")

    assert agent.is_chat_enabled()
    assert agent.config.user_role is UserRole.FACULTY_MEMBER
    assert "faculty member" in agent.system_prompt
    assert loader.call_count == 1

    factory.invalidate()
    factory("s3")
    assert loader.call_count == 2


def test_system_prompt_and_content_helpers():
    assert build_system_prompt(fake_config(initial_prompt="Be brief.")) == "Be brief."
    assert "student" in build_system_prompt(fake_config(user_role="student"))
    assert content_to_text([{"type": "text", "text": "a"}, "b", {"type": "image"}]) == "ab"
