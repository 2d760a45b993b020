"""Study material models — on-demand generation requests and exam grading."""

from __future__ import annotations

from pydantic import Field

from models.base import CamelModel
from models.topic import ExamQuestion, Flashcard, QuizQuestion


class GenerateMaterialsRequest(CamelModel):
    """POST .../flashcards | quiz | exam — request body."""

    regenerate: bool = False


class FlashcardsResponse(CamelModel):
    topic_id: str
    flashcards: list[Flashcard] = Field(default_factory=list)


class QuizResponse(CamelModel):
    topic_id: str
    quizzes: list[QuizQuestion] = Field(default_factory=list)


class ExamResponse(CamelModel):
    topic_id: str
    exam_questions: list[ExamQuestion] = Field(default_factory=list)


class ExamSubmission(CamelModel):
    """Learner answers keyed by question id.

    MCQ answers are option indices; short answers are free text.
    """

    answers: dict[str, int | str] = Field(default_factory=dict)


class ExamFeedback(CamelModel):
    """Grader output for a submitted exam."""

    score: float = 0.0
    total_questions: int = 0
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    study_plan: str = ""
    question_feedback: dict[str, str] = Field(default_factory=dict)


class StartSessionRequest(CamelModel):
    """POST /api/sessions — request body."""

    topic: str = Field(min_length=1)


class NotebookUpdate(CamelModel):
    """PUT /api/sessions/{id}/notebook — request body."""

    content: str = ""


class SlideImageUpdate(CamelModel):
    """PUT /api/sessions/{id}/slides/{index}/image — rendered slide image."""

    image_url: str = Field(min_length=1)


class TopicVideoUpdate(CamelModel):
    """PUT /api/sessions/{id}/topics/{tid}/video — rendered topic video (None clears)."""

    video_uri: str | None = None


# ── Structured model outputs ─────────────────────────────────


class FlashcardSet(CamelModel):
    flashcards: list[Flashcard] = Field(default_factory=list)


class QuizSet(CamelModel):
    questions: list[QuizQuestion] = Field(default_factory=list)


class ExamPaper(CamelModel):
    questions: list[ExamQuestion] = Field(default_factory=list)
