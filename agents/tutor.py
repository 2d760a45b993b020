"""ConversationEngine — the stateful parent agent (tutor) of a session.

The engine keeps the full PydanticAI message history of its session, so
the orchestrator sends only the newest composite turn and never resends
prior turns.  An engine can be seeded with an earlier chat transcript
when a session is restored.

Synthesis calls on one engine are serialized: concurrent turns would
otherwise interleave their history updates.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from pydantic_ai import Agent
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)

from agents.provider import create_model, get_model_for_role
from config.llm_config import LLMConfig
from config.prompts.tutor import build_tutor_prompt
from config.settings import get_settings
from errors.exceptions import SynthesisError
from models.topic import ChatMessage
from services.concurrency import rate_limited_llm_call

logger = logging.getLogger(__name__)

# Slightly higher temperature for natural conversation
TUTOR_LLM_CONFIG = LLMConfig(temperature=0.7)


def to_model_messages(history: Sequence[ChatMessage], system_prompt: str) -> list[ModelMessage]:
    """Convert a chat transcript into PydanticAI messages.

    The system prompt is attached to the first request, because PydanticAI
    only injects static system prompts when the history is empty.
    """
    messages: list[ModelMessage] = []
    for msg in history:
        if msg.role == "user":
            messages.append(ModelRequest(parts=[UserPromptPart(content=msg.text)]))
        else:
            messages.append(ModelResponse(parts=[TextPart(content=msg.text)]))
    if not messages:
        return messages

    system_part = SystemPromptPart(content=system_prompt)
    if isinstance(messages[0], ModelRequest):
        messages[0] = ModelRequest(parts=[system_part, *messages[0].parts])
    else:
        messages.insert(0, ModelRequest(parts=[system_part]))
    return messages


class ConversationEngine:
    """Multi-turn tutor scoped to one session's anchor topic."""

    def __init__(
        self,
        topic: str,
        history: Sequence[ChatMessage] = (),
        model=None,
    ) -> None:
        self.topic = topic
        self._model = model
        self._agent: Agent[None, str] | None = None
        self._messages: list[ModelMessage] = to_model_messages(
            history, build_tutor_prompt(topic)
        )
        self._lock = asyncio.Lock()

    @property
    def agent(self) -> Agent[None, str]:
        if self._agent is None:
            self._agent = Agent(
                model=self._model or create_model(get_model_for_role("tutor")),
                system_prompt=build_tutor_prompt(self.topic),
                retries=1,
                defer_model_check=True,
            )
        return self._agent

    @property
    def message_count(self) -> int:
        """Number of PydanticAI messages retained for this session."""
        return len(self._messages)

    async def synthesize(self, turn_content: str) -> str:
        """Send the newest turn and return the tutor's reply.

        History is only extended when the call succeeds.

        Raises:
            SynthesisError: the model call failed.
        """
        async with self._lock:
            try:
                result = await rate_limited_llm_call(
                    self.agent.run,
                    turn_content,
                    message_history=list(self._messages),
                    model_settings=get_settings().model_settings_for(TUTOR_LLM_CONFIG),
                )
            except Exception as exc:
                raise SynthesisError(f"{type(exc).__name__}: {exc}") from exc
            self._messages = result.all_messages()

        response = str(result.output)
        logger.info(
            "Tutor: topic=%r history_messages=%d response length=%d",
            self.topic,
            len(self._messages),
            len(response),
        )
        return response
