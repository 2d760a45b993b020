"""Topic models — per-subject state tracked across a tutoring session.

A :class:`Topic` owns the learner/tutor messages exchanged while it was
active, an accumulating knowledge base and the study artifacts generated
for it (flashcards, quiz items, exam questions, notebook notes).
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Literal

from pydantic import Field

from models.base import CamelModel


class Source(CamelModel):
    """A citation returned by the research producer."""

    title: str
    uri: str


class ChatMessage(CamelModel):
    """A single turn record: learner ("user") or tutor ("model")."""

    role: Literal["user", "model"]
    text: str
    sources: list[Source] | None = None


class Flashcard(CamelModel):
    front: str
    back: str


class QuizQuestion(CamelModel):
    """Multiple-choice practice question."""

    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer_index: int = 0
    explanation: str = ""


class QuestionType(str, Enum):
    MCQ = "MCQ"
    SHORT_ANSWER = "SHORT_ANSWER"


class ExamQuestion(CamelModel):
    """Mock exam question — MCQ carries options, short answer a model answer."""

    id: str = ""
    type: QuestionType
    question: str
    options: list[str] | None = None
    correct_answer_index: int | None = None
    model_answer: str | None = None  # Key points used by the grader


def generate_topic_id() -> str:
    """Generate a new opaque topic ID."""
    return f"topic-{uuid.uuid4().hex[:12]}"


class Topic(CamelModel):
    """A subject of study with its own history and generated artifacts."""

    id: str = Field(default_factory=generate_topic_id)
    name: str
    created_at: float = Field(default_factory=time.time)
    is_main: bool = False
    messages: list[ChatMessage] = Field(default_factory=list)
    knowledge_base: str = ""
    flashcards: list[Flashcard] = Field(default_factory=list)
    quizzes: list[QuizQuestion] = Field(default_factory=list)
    exam_questions: list[ExamQuestion] = Field(default_factory=list)
    notebook_content: str = ""
    video_uri: str | None = None


class TopicSummary(CamelModel):
    """Lightweight listing entry for a topic (no message bodies)."""

    id: str
    name: str
    created_at: float
    is_main: bool
    message_count: int = 0
    has_knowledge: bool = False

    @classmethod
    def from_topic(cls, topic: Topic) -> TopicSummary:
        return cls(
            id=topic.id,
            name=topic.name,
            created_at=topic.created_at,
            is_main=topic.is_main,
            message_count=len(topic.messages),
            has_knowledge=bool(topic.knowledge_base),
        )


class TopicContent(CamelModel):
    """Read-only bundle of a topic's study artifacts.

    Returned with empty defaults when the topic id is unknown.
    """

    flashcards: list[Flashcard] = Field(default_factory=list)
    quizzes: list[QuizQuestion] = Field(default_factory=list)
    exam_questions: list[ExamQuestion] = Field(default_factory=list)
    notebook_content: str = ""
    knowledge_base: str = ""
