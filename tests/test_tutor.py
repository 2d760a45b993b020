"""Tests for agents/tutor.py — the stateful conversation engine."""

import asyncio
from unittest.mock import patch

import pytest
from pydantic_ai.messages import ModelRequest, ModelResponse, SystemPromptPart, TextPart
from pydantic_ai.models.function import FunctionModel
from pydantic_ai.models.test import TestModel

from agents.tutor import ConversationEngine, to_model_messages
from config.settings import Settings
from errors.exceptions import SynthesisError
from models.topic import ChatMessage


def test_to_model_messages_empty_history():
    assert to_model_messages([], "system") == []


def test_to_model_messages_attaches_system_prompt():
    history = [
        ChatMessage(role="model", text="Welcome to History!"),
        ChatMessage(role="user", text="Who was Caesar?"),
    ]
    messages = to_model_messages(history, "You are a tutor.")
    assert isinstance(messages[0], ModelRequest)
    assert isinstance(messages[0].parts[0], SystemPromptPart)
    assert isinstance(messages[1], ModelResponse)
    assert messages[1].parts[0].content == "Welcome to History!"
    assert len(messages) == 3


def test_to_model_messages_merges_into_first_request():
    messages = to_model_messages([ChatMessage(role="user", text="hi")], "sys")
    assert len(messages) == 1
    assert [type(p) for p in messages[0].parts][0] is SystemPromptPart


@pytest.mark.asyncio
async def test_synthesize_returns_reply_and_keeps_history():
    engine = ConversationEngine("History", model=TestModel(custom_output_text="Caesar was a Roman general."))
    reply = await engine.synthesize("User Query: Who was Caesar?")
    assert reply == "Caesar was a Roman general."
    first_count = engine.message_count
    await engine.synthesize("User Query: And Augustus?")
    assert engine.message_count > first_count


@pytest.mark.asyncio
async def test_history_is_sent_with_each_turn():
    seen_lengths: list[int] = []

    def respond(messages, info):
        seen_lengths.append(len(messages))
        return ModelResponse(parts=[TextPart(content="ok")])

    engine = ConversationEngine("History", model=FunctionModel(respond))
    await engine.synthesize("first")
    await engine.synthesize("second")
    assert seen_lengths == [1, 3]


@pytest.mark.asyncio
async def test_seeded_history_is_used():
    seen: list = []

    def respond(messages, info):
        seen.extend(messages)
        return ModelResponse(parts=[TextPart(content="ok")])

    history = [
        ChatMessage(role="model", text="Welcome!"),
        ChatMessage(role="user", text="Tell me about Rome"),
        ChatMessage(role="model", text="Rome was founded in 753 BC."),
    ]
    engine = ConversationEngine("History", history, model=FunctionModel(respond))
    assert engine.message_count == 4
    await engine.synthesize("And then?")
    texts = [getattr(p, "content", "") for m in seen for p in m.parts]
    assert "Rome was founded in 753 BC." in texts
    assert any("History" in t for t in texts if isinstance(t, str))


@pytest.mark.asyncio
async def test_failure_raises_and_keeps_history():
    calls = 0

    def respond(messages, info):
        nonlocal calls
        calls += 1
        if calls == 2:
            raise RuntimeError("provider timeout")
        return ModelResponse(parts=[TextPart(content="ok")])

    engine = ConversationEngine("History", model=FunctionModel(respond))
    await engine.synthesize("first")
    count = engine.message_count
    with pytest.raises(SynthesisError, match="provider timeout"):
        await engine.synthesize("second")
    assert engine.message_count == count


@pytest.mark.asyncio
async def test_concurrent_turns_are_serialized():
    engine = ConversationEngine("History", model=TestModel(custom_output_text="ok"))
    await asyncio.gather(engine.synthesize("a"), engine.synthesize("b"))
    # two complete request/response pairs, none lost to interleaving
    assert engine.message_count == 4


@pytest.mark.asyncio
async def test_synthesize_applies_global_generation_defaults():
    seen: list[dict] = []

    def respond(messages, info):
        seen.append(dict(info.model_settings or {}))
        return ModelResponse(parts=[TextPart(content="ok")])

    settings = Settings(_env_file=None, max_tokens=321, temperature=1.5, seed=7)
    with patch("agents.tutor.get_settings", return_value=settings):
        engine = ConversationEngine("History", model=FunctionModel(respond))
        await engine.synthesize("User Query: Who was Caesar?")

    assert seen[0]["max_tokens"] == 321
    assert seen[0]["seed"] == 7
    # the tutor's own temperature wins over the global one
    assert seen[0]["temperature"] == 0.7
