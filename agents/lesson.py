"""LessonAgent — slide-by-slide lesson generation.

Slides are generated lazily: the first one when a session starts, each
following one when the learner advances past the last slide.  Before a
new slide is generated, the chat about the finished slide is summarised
so the next slide can follow the learner's interests.
"""

from __future__ import annotations

import logging
from typing import Sequence

from pydantic_ai import Agent

from agents.provider import create_model, get_model_for_role
from config.llm_config import LLMConfig
from config.prompts.lesson import (
    LESSON_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_initial_slide_prompt,
    build_next_slide_prompt,
    build_summary_prompt,
)
from config.settings import get_settings
from errors.exceptions import MaterialGenerationError
from models.session import LessonSlide
from models.topic import ChatMessage
from services.concurrency import rate_limited_llm_call

logger = logging.getLogger(__name__)

LESSON_LLM_CONFIG = LLMConfig(temperature=0.6)
SUMMARY_LLM_CONFIG = LLMConfig(temperature=0.2)


def format_transcript(history: Sequence[ChatMessage]) -> str:
    return "\n".join(f"{m.role}: {m.text}" for m in history)


class LessonAgent:
    def __init__(self, model=None) -> None:
        self._model = model
        self._slide_agent: Agent[None, LessonSlide] | None = None
        self._summary_agent: Agent[None, str] | None = None

    def _resolve_model(self):
        return self._model or create_model(get_model_for_role("materials"))

    @property
    def slide_agent(self) -> Agent[None, LessonSlide]:
        if self._slide_agent is None:
            self._slide_agent = Agent(
                model=self._resolve_model(),
                output_type=LessonSlide,
                system_prompt=LESSON_SYSTEM_PROMPT,
                retries=1,
                defer_model_check=True,
            )
        return self._slide_agent

    @property
    def summary_agent(self) -> Agent[None, str]:
        if self._summary_agent is None:
            self._summary_agent = Agent(
                model=self._resolve_model(),
                system_prompt=SUMMARY_SYSTEM_PROMPT,
                retries=1,
                defer_model_check=True,
            )
        return self._summary_agent

    async def _slide(self, prompt: str) -> LessonSlide:
        try:
            result = await rate_limited_llm_call(
                self.slide_agent.run,
                prompt,
                model_settings=get_settings().model_settings_for(LESSON_LLM_CONFIG),
            )
        except Exception as exc:
            raise MaterialGenerationError("slide", str(exc)) from exc
        # image_url is only set by the external image renderer.
        return result.output.model_copy(update={"image_url": None})

    async def initial_slide(self, topic: str) -> LessonSlide:
        """Introductory slide for *topic*.

        Raises:
            MaterialGenerationError: the model call failed.
        """
        slide = await self._slide(build_initial_slide_prompt(topic))
        logger.info("Initial slide for %r: %r", topic, slide.title)
        return slide

    async def next_slide(self, topic: str, previous_title: str, lesson_context: str) -> LessonSlide:
        slide = await self._slide(build_next_slide_prompt(topic, previous_title, lesson_context))
        logger.info("Next slide for %r after %r: %r", topic, previous_title, slide.title)
        return slide

    async def summarize_discussion(self, slide_title: str, history: Sequence[ChatMessage]) -> str:
        """One or two sentences on what was discussed about a slide.  Never raises."""
        if not history:
            return f"Completed slide: {slide_title}."
        try:
            result = await rate_limited_llm_call(
                self.summary_agent.run,
                build_summary_prompt(slide_title, format_transcript(history)),
                model_settings=get_settings().model_settings_for(SUMMARY_LLM_CONFIG),
            )
        except Exception:
            logger.warning("Slide summary failed for %r", slide_title, exc_info=True)
            return f"Discussed {slide_title}."
        return str(result.output).strip() or f"Discussed {slide_title}."
