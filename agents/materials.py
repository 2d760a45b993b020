"""StudyMaterialsAgent — flashcards, quizzes, exams and exam grading.

Used two ways:
- **Enrichment** (background): :meth:`generate_micro_materials` builds a
  small bundle from one question/answer exchange after every turn.
- **On demand**: full flashcard decks, quizzes and mock exams grounded in
  a topic's knowledge base, plus grading of a submitted exam.

One PydanticAI agent is built per structured output type and reused.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic_ai import Agent

from agents.provider import create_model, get_model_for_role
from config.llm_config import LLMConfig
from config.prompts.materials import (
    GRADER_SYSTEM_PROMPT,
    MATERIALS_SYSTEM_PROMPT,
    build_exam_prompt,
    build_flashcards_prompt,
    build_grading_input,
    build_micro_set_prompt,
    build_quiz_prompt,
)
from config.settings import get_settings
from errors.exceptions import EnrichmentError, MaterialGenerationError
from models.study import ExamFeedback, ExamPaper, FlashcardSet, QuizSet
from models.topic import ExamQuestion, Flashcard, QuestionType, QuizQuestion
from models.turn import MicroStudySet
from services.concurrency import rate_limited_llm_call

logger = logging.getLogger(__name__)

MATERIALS_LLM_CONFIG = LLMConfig(temperature=0.4)
GRADER_LLM_CONFIG = LLMConfig(temperature=0.1)


def build_grading_payload(
    questions: list[ExamQuestion],
    answers: Mapping[str, int | str],
) -> list[dict[str, Any]]:
    """Prepare grader input; MCQ correctness is decided locally."""
    payload: list[dict[str, Any]] = []
    for q in questions:
        answer = answers.get(q.id)
        if q.type == QuestionType.MCQ:
            selected = _as_index(answer)
            options = q.options or []
            correct_idx = q.correct_answer_index or 0
            payload.append({
                "id": q.id,
                "type": QuestionType.MCQ.value,
                "question": q.question,
                "correct": selected is not None and selected == q.correct_answer_index,
                "user_selected": (
                    options[selected]
                    if selected is not None and 0 <= selected < len(options)
                    else "Skipped"
                ),
                "correct_option": options[correct_idx] if correct_idx < len(options) else None,
            })
        else:
            payload.append({
                "id": q.id,
                "type": QuestionType.SHORT_ANSWER.value,
                "question": q.question,
                "user_text": str(answer) if answer not in (None, "") else "No answer provided",
                "model_answer": q.model_answer,
            })
    return payload


def _as_index(answer: int | str | None) -> int | None:
    if isinstance(answer, int):
        return answer
    if isinstance(answer, str) and answer.strip().isdigit():
        return int(answer.strip())
    return None


def grading_fallback(total: int) -> ExamFeedback:
    return ExamFeedback(
        score=0,
        total_questions=total,
        strengths=[],
        weaknesses=["Grading system unavailable"],
        study_plan="Please try again later.",
        question_feedback={},
    )


class StudyMaterialsAgent:
    """Boundary for every study-material generation call."""

    def __init__(self, model=None) -> None:
        self._model = model
        self._agents: dict[str, Agent] = {}

    def _agent_for(self, output_type: type, system_prompt: str = MATERIALS_SYSTEM_PROMPT) -> Agent:
        key = output_type.__name__
        if key not in self._agents:
            self._agents[key] = Agent(
                model=self._model or create_model(get_model_for_role("materials")),
                output_type=output_type,
                system_prompt=system_prompt,
                retries=1,
                defer_model_check=True,
            )
        return self._agents[key]

    async def _run(self, output_type: type, prompt: str, config: LLMConfig = MATERIALS_LLM_CONFIG, **agent_kwargs):
        agent = self._agent_for(output_type, **agent_kwargs)
        result = await rate_limited_llm_call(
            agent.run,
            prompt,
            model_settings=get_settings().model_settings_for(config),
        )
        return result.output

    # ── Enrichment ───────────────────────────────────────────

    async def generate_micro_materials(self, topic_name: str, seed_context: str) -> MicroStudySet:
        """A handful of flashcards and quiz items for one exchange.

        Raises:
            EnrichmentError: the model call failed.
        """
        settings = get_settings()
        prompt = build_micro_set_prompt(
            topic_name,
            seed_context,
            settings.enrichment_flashcard_count,
            settings.enrichment_quiz_count,
        )
        try:
            output: MicroStudySet = await self._run(MicroStudySet, prompt)
        except Exception as exc:
            raise EnrichmentError(topic_name, f"{type(exc).__name__}: {exc}") from exc
        return MicroStudySet(
            flashcards=output.flashcards[: settings.enrichment_flashcard_count],
            quiz=output.quiz[: settings.enrichment_quiz_count],
        )

    # ── On-demand materials ──────────────────────────────────

    async def generate_flashcards(self, topic: str, context: str = "", count: int = 8) -> list[Flashcard]:
        try:
            output: FlashcardSet = await self._run(
                FlashcardSet, build_flashcards_prompt(topic, context, count)
            )
        except Exception as exc:
            raise MaterialGenerationError("flashcards", str(exc)) from exc
        logger.info("Generated %d flashcard(s) for %r", len(output.flashcards), topic)
        return output.flashcards

    async def generate_quiz(self, topic: str, context: str = "", count: int = 5) -> list[QuizQuestion]:
        try:
            output: QuizSet = await self._run(QuizSet, build_quiz_prompt(topic, context, count))
        except Exception as exc:
            raise MaterialGenerationError("quiz", str(exc)) from exc
        logger.info("Generated %d quiz question(s) for %r", len(output.questions), topic)
        return output.questions

    async def generate_exam(self, topic: str, context: str = "") -> list[ExamQuestion]:
        """Mixed-format exam (MCQ + short answer); missing ids become ``q-<i>``."""
        try:
            output: ExamPaper = await self._run(ExamPaper, build_exam_prompt(topic, context))
        except Exception as exc:
            raise MaterialGenerationError("exam", str(exc)) from exc
        questions = [
            q if q.id else q.model_copy(update={"id": f"q-{i}"})
            for i, q in enumerate(output.questions)
        ]
        logger.info("Generated exam with %d question(s) for %r", len(questions), topic)
        return questions

    async def grade_exam(
        self,
        topic: str,
        questions: list[ExamQuestion],
        answers: Mapping[str, int | str],
    ) -> ExamFeedback:
        """Grade a submission.  Falls back to a zero-score report on failure."""
        payload = build_grading_payload(questions, answers)
        try:
            feedback: ExamFeedback = await self._run(
                ExamFeedback,
                build_grading_input(topic, payload),
                GRADER_LLM_CONFIG,
                system_prompt=GRADER_SYSTEM_PROMPT,
            )
        except Exception:
            logger.exception("Exam grading failed for %r", topic)
            return grading_fallback(len(questions))

        if not feedback.total_questions:
            feedback = feedback.model_copy(update={"total_questions": len(questions)})
        return feedback
