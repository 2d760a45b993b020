"""Turn models — classifier output, producer output and the turn contract.

Defines the data exchanged across one learner turn:
- Topic shift classification (:class:`TopicAnalysis`)
- Child producer output (:class:`ResearchResult`)
- Enrichment bundle (:class:`MicroStudySet`)
- Orchestrator result and HTTP request/response bodies
"""

from __future__ import annotations

from pydantic import Field

from models.base import CamelModel
from models.session import AgentMode
from models.topic import ChatMessage, Flashcard, QuizQuestion, Source


class TopicAnalysis(CamelModel):
    """Output of the topic shift classifier.

    When ``is_new_topic`` is false, ``topic_name`` equals the current topic.
    """

    is_new_topic: bool = False
    topic_name: str = ""


class ResearchResult(CamelModel):
    """Output of the research producer."""

    text: str
    sources: list[Source] = Field(default_factory=list)


class MicroStudySet(CamelModel):
    """Small supplementary bundle appended after each turn."""

    flashcards: list[Flashcard] = Field(default_factory=list)
    quiz: list[QuizQuestion] = Field(default_factory=list)


class ShiftInfo(CamelModel):
    """What the classifier decided for a turn, as seen by the presentation layer."""

    is_new_topic: bool
    topic_name: str
    previous_topic_name: str
    topic_id: str | None = None


class TurnResult(CamelModel):
    """Result of :meth:`AgentOrchestrator.process_turn`."""

    response: ChatMessage
    analysis: TopicAnalysis
    shift_info: ShiftInfo
    sources: list[Source] = Field(default_factory=list)


# ── HTTP bodies ──────────────────────────────────────────────


class TurnRequest(CamelModel):
    """POST /api/sessions/{id}/turns — request body."""

    message: str = Field(min_length=1)
    mode: AgentMode = AgentMode.TUTOR
    recent_history: list[ChatMessage] = Field(default_factory=list)
    lesson_anchor: str | None = None  # Defaults to the current slide title


class TurnResponse(CamelModel):
    """POST /api/sessions/{id}/turns — response body."""

    response_message: ChatMessage
    shift_info: ShiftInfo
