"""TopicShiftClassifier — detects when the learner silently changes subject.

Stateless per call: the current subject, the latest utterance and a short
rolling window of recent turns go in, a :class:`TopicAnalysis` comes out.

The raw model output is normalized so callers can treat ``topic_name``
uniformly:
- no shift (or an empty / same-as-current name) → ``topic_name`` is the
  current subject,
- shift → ``topic_name`` is the trimmed new subject.

Failures raise :class:`ClassificationError`; the orchestrator falls back
to "no shift".
"""

from __future__ import annotations

import logging
from typing import Sequence

from pydantic_ai import Agent

from agents.provider import create_model, get_model_for_role
from config.llm_config import LLMConfig
from config.prompts.classifier import CLASSIFIER_SYSTEM_PROMPT, build_classifier_input
from config.settings import get_settings
from errors.exceptions import ClassificationError
from models.topic import ChatMessage
from models.turn import TopicAnalysis
from services.concurrency import rate_limited_llm_call
from services.topic_store import normalize_topic_name

logger = logging.getLogger(__name__)

# Classification should be stable across retries
CLASSIFIER_LLM_CONFIG = LLMConfig(temperature=0.1)


def format_history_snippet(history: Sequence[ChatMessage], window: int) -> str:
    """Join the texts of the last *window* turns with `` | ``."""
    if window <= 0:
        return ""
    return " | ".join(m.text for m in list(history)[-window:])


def normalize_analysis(raw: TopicAnalysis, current_topic: str) -> TopicAnalysis:
    """Collapse non-shifts onto the current topic name."""
    name = (raw.topic_name or "").strip()
    if (
        not raw.is_new_topic
        or not name
        or normalize_topic_name(name) == normalize_topic_name(current_topic)
    ):
        return TopicAnalysis(is_new_topic=False, topic_name=current_topic)
    return TopicAnalysis(is_new_topic=True, topic_name=name)


class TopicShiftClassifier:
    """Boundary around the topic shift classification model call."""

    def __init__(self, model=None, history_window: int | None = None) -> None:
        self._model = model
        self._agent: Agent[None, TopicAnalysis] | None = None
        if history_window is None:
            history_window = get_settings().classifier_history_window
        self.history_window = history_window

    @property
    def agent(self) -> Agent[None, TopicAnalysis]:
        """Lazily built so provider credentials are only needed on first use."""
        if self._agent is None:
            self._agent = Agent(
                model=self._model or create_model(get_model_for_role("classifier")),
                output_type=TopicAnalysis,
                system_prompt=CLASSIFIER_SYSTEM_PROMPT,
                retries=1,
                defer_model_check=True,
            )
        return self._agent

    async def classify(
        self,
        current_topic: str,
        utterance: str,
        history: Sequence[ChatMessage] = (),
    ) -> TopicAnalysis:
        """Decide whether *utterance* moves away from *current_topic*.

        Raises:
            ClassificationError: the model call failed or returned no usable output.
        """
        prompt = build_classifier_input(
            current_topic,
            utterance,
            format_history_snippet(history, self.history_window),
        )
        try:
            result = await rate_limited_llm_call(
                self.agent.run,
                prompt,
                model_settings=get_settings().model_settings_for(CLASSIFIER_LLM_CONFIG),
            )
        except Exception as exc:
            raise ClassificationError(f"{type(exc).__name__}: {exc}") from exc

        analysis = normalize_analysis(result.output, current_topic)
        logger.info(
            "Classifier: current=%r new_topic=%s topic=%r message=%.60s",
            current_topic,
            analysis.is_new_topic,
            analysis.topic_name,
            utterance,
        )
        return analysis
