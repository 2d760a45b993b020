"""Tests for agents/classifier.py — topic shift detection and normalization."""

import pytest
from pydantic_ai.messages import ModelMessage, ModelResponse, ToolCallPart
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.models.test import TestModel

from agents.classifier import TopicShiftClassifier, format_history_snippet, normalize_analysis
from errors.exceptions import ClassificationError
from models.topic import ChatMessage
from models.turn import TopicAnalysis


def _scripted_model(is_new_topic: bool, topic_name: str, prompts: list | None = None) -> FunctionModel:
    """FunctionModel answering with a fixed TopicAnalysis and recording prompts."""

    def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        if prompts is not None:
            prompts.append(messages[-1].parts[-1].content)
        return ModelResponse(parts=[
            ToolCallPart(
                info.output_tools[0].name,
                {"is_new_topic": is_new_topic, "topic_name": topic_name},
            )
        ])

    return FunctionModel(respond)


# ── normalize_analysis ────────────────────────────────────────


def test_normalize_no_shift_uses_current_topic():
    raw = TopicAnalysis(is_new_topic=False, topic_name="Whatever")
    assert normalize_analysis(raw, "History") == TopicAnalysis(
        is_new_topic=False, topic_name="History"
    )


def test_normalize_empty_name_is_not_a_shift():
    raw = TopicAnalysis(is_new_topic=True, topic_name="   ")
    assert normalize_analysis(raw, "History").is_new_topic is False


def test_normalize_same_name_is_not_a_shift():
    raw = TopicAnalysis(is_new_topic=True, topic_name="history ")
    result = normalize_analysis(raw, "History")
    assert result.is_new_topic is False
    assert result.topic_name == "History"


def test_normalize_shift_trims_name():
    raw = TopicAnalysis(is_new_topic=True, topic_name="  Biology ")
    assert normalize_analysis(raw, "History") == TopicAnalysis(
        is_new_topic=True, topic_name="Biology"
    )


# ── format_history_snippet ────────────────────────────────────


def test_history_snippet_keeps_last_window():
    history = [ChatMessage(role="user", text=f"m{i}") for i in range(5)]
    assert format_history_snippet(history, 3) == "m2 | m3 | m4"
    assert format_history_snippet(history, 0) == ""
    assert format_history_snippet([], 3) == ""


# ── classify (model boundary) ────────────────────────────────


@pytest.mark.asyncio
async def test_follow_up_question_is_not_a_shift():
    """A generic 'why?' while studying Thermodynamics stays on topic."""
    classifier = TopicShiftClassifier(model=_scripted_model(True, "Thermodynamics"))
    result = await classifier.classify("Thermodynamics", "why is that?")
    assert result == TopicAnalysis(is_new_topic=False, topic_name="Thermodynamics")


@pytest.mark.asyncio
async def test_distinct_subject_is_a_shift():
    classifier = TopicShiftClassifier(model=_scripted_model(True, "Biology"))
    result = await classifier.classify("History", "How do cells divide?")
    assert result.is_new_topic is True
    assert result.topic_name == "Biology"


@pytest.mark.asyncio
async def test_prompt_contains_topic_utterance_and_history_window():
    prompts: list[str] = []
    classifier = TopicShiftClassifier(
        model=_scripted_model(False, "History", prompts), history_window=2
    )
    history = [
        ChatMessage(role="user", text="Tell me about Rome"),
        ChatMessage(role="model", text="Rome was founded in 753 BC"),
        ChatMessage(role="user", text="And the Republic?"),
    ]
    await classifier.classify("History", "Who was Caesar?", history)

    prompt = prompts[0]
    assert 'Current Official Topic: "History"' in prompt
    assert '"Who was Caesar?"' in prompt
    assert "Rome was founded in 753 BC | And the Republic?" in prompt
    assert "Tell me about Rome" not in prompt


@pytest.mark.asyncio
async def test_test_model_output_is_normalized():
    classifier = TopicShiftClassifier(
        model=TestModel(custom_output_args={"is_new_topic": False, "topic_name": ""})
    )
    result = await classifier.classify("Chemistry", "Give me an example")
    assert result.topic_name == "Chemistry"


@pytest.mark.asyncio
async def test_model_failure_raises_classification_error():
    def broken(messages, info):
        raise RuntimeError("quota exceeded")

    classifier = TopicShiftClassifier(model=FunctionModel(broken))
    with pytest.raises(ClassificationError, match="quota exceeded"):
        await classifier.classify("History", "anything")
