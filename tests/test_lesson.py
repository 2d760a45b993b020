"""Tests for agents/lesson.py — slide generation and discussion summaries."""

import pytest
from pydantic_ai.models.function import FunctionModel
from pydantic_ai.models.test import TestModel

from agents.lesson import LessonAgent, format_transcript
from errors.exceptions import MaterialGenerationError
from models.topic import ChatMessage

_SLIDE_ARGS = {
    "title": "Introduction to Rome",
    "content": "Rome grew from a small city into an empire.",
    "image_prompt": "A map of the Mediterranean with Roman territories shaded",
    "image_url": "https://model.invented/image.png",
}


def _broken_model() -> FunctionModel:
    def broken(messages, info):
        raise RuntimeError("model offline")

    return FunctionModel(broken)


@pytest.mark.asyncio
async def test_initial_slide():
    slide = await LessonAgent(TestModel(custom_output_args=_SLIDE_ARGS)).initial_slide("Roman History")
    assert slide.title == "Introduction to Rome"
    assert slide.image_prompt.startswith("A map")
    assert slide.image_url is None


@pytest.mark.asyncio
async def test_next_slide():
    agent = LessonAgent(TestModel(custom_output_args={**_SLIDE_ARGS, "title": "The Republic"}))
    slide = await agent.next_slide("Roman History", "Introduction to Rome", '- Slide "Intro" Summary: ok')
    assert slide.title == "The Republic"


@pytest.mark.asyncio
async def test_slide_failure_raises():
    with pytest.raises(MaterialGenerationError):
        await LessonAgent(_broken_model()).initial_slide("Roman History")


@pytest.mark.asyncio
async def test_summary_without_discussion():
    summary = await LessonAgent(_broken_model()).summarize_discussion("Intro", [])
    assert summary == "Completed slide: Intro."


@pytest.mark.asyncio
async def test_summary_of_discussion():
    agent = LessonAgent(TestModel(custom_output_text=" The student asked about Caesar. "))
    summary = await agent.summarize_discussion(
        "Intro", [ChatMessage(role="user", text="Who was Caesar?")]
    )
    assert summary == "The student asked about Caesar."


@pytest.mark.asyncio
async def test_summary_failure_falls_back():
    summary = await LessonAgent(_broken_model()).summarize_discussion(
        "Intro", [ChatMessage(role="user", text="Who was Caesar?")]
    )
    assert summary == "Discussed Intro."


def test_format_transcript():
    history = [ChatMessage(role="user", text="hi"), ChatMessage(role="model", text="hello")]
    assert format_transcript(history) == "user: hi\nmodel: hello"
