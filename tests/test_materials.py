"""Tests for agents/materials.py — enrichment bundles, study sets, exams and grading."""

import pytest
from pydantic_ai.models.function import FunctionModel
from pydantic_ai.models.test import TestModel

from agents.materials import StudyMaterialsAgent, build_grading_payload, grading_fallback
from errors.exceptions import EnrichmentError, MaterialGenerationError
from models.topic import ExamQuestion, QuestionType


def _broken_model() -> FunctionModel:
    def broken(messages, info):
        raise RuntimeError("model offline")

    return FunctionModel(broken)


def _exam_questions() -> list[ExamQuestion]:
    return [
        ExamQuestion(
            id="q-0",
            type=QuestionType.MCQ,
            question="Capital of the Roman Empire?",
            options=["Athens", "Rome", "Carthage", "Alexandria"],
            correct_answer_index=1,
        ),
        ExamQuestion(
            id="q-1",
            type=QuestionType.MCQ,
            question="Year of Caesar's death?",
            options=["44 BC", "27 BC", "476 AD", "753 BC"],
            correct_answer_index=0,
        ),
        ExamQuestion(
            id="q-2",
            type=QuestionType.SHORT_ANSWER,
            question="Why did the Republic fall?",
            model_answer="Civil wars, concentration of power.",
        ),
    ]


# ── Enrichment ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_micro_materials_are_capped_to_configured_counts():
    model = TestModel(custom_output_args={
        "flashcards": [{"front": f"F{i}", "back": "B"} for i in range(6)],
        "quiz": [{"question": f"Q{i}", "options": ["a", "b", "c", "d"]} for i in range(4)],
    })
    bundle = await StudyMaterialsAgent(model).generate_micro_materials(
        "Biology", "User asked: What is ATP?. Model Answered: Energy currency."
    )
    assert len(bundle.flashcards) == 3
    assert len(bundle.quiz) == 2


@pytest.mark.asyncio
async def test_micro_materials_failure_raises_enrichment_error():
    with pytest.raises(EnrichmentError, match="Biology"):
        await StudyMaterialsAgent(_broken_model()).generate_micro_materials("Biology", "seed")


# ── On-demand sets ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_generate_flashcards():
    model = TestModel(custom_output_args={
        "flashcards": [{"front": "Caesar", "back": "Roman general"}],
    })
    cards = await StudyMaterialsAgent(model).generate_flashcards("History", "- Caesar crossed the Rubicon")
    assert cards[0].front == "Caesar"


@pytest.mark.asyncio
async def test_generate_quiz():
    model = TestModel(custom_output_args={
        "questions": [{
            "question": "Who crossed the Rubicon?",
            "options": ["Caesar", "Pompey", "Crassus", "Cicero"],
            "correct_answer_index": 0,
            "explanation": "In 49 BC.",
        }],
    })
    questions = await StudyMaterialsAgent(model).generate_quiz("History")
    assert questions[0].options[questions[0].correct_answer_index] == "Caesar"


@pytest.mark.asyncio
async def test_generation_failure_raises_material_error():
    agent = StudyMaterialsAgent(_broken_model())
    with pytest.raises(MaterialGenerationError) as exc_info:
        await agent.generate_quiz("History")
    assert exc_info.value.material == "quiz"


@pytest.mark.asyncio
async def test_generate_exam_fills_missing_ids():
    model = TestModel(custom_output_args={
        "questions": [
            {"id": "", "type": "MCQ", "question": "a?", "options": ["1", "2"], "correct_answer_index": 0},
            {"id": "custom", "type": "SHORT_ANSWER", "question": "b?", "model_answer": "x"},
            {"type": "SHORT_ANSWER", "question": "c?", "model_answer": "y"},
        ],
    })
    questions = await StudyMaterialsAgent(model).generate_exam("History", "context")
    assert [q.id for q in questions] == ["q-0", "custom", "q-2"]


# ── Grading ───────────────────────────────────────────────────


def test_grading_payload_scores_mcq_locally():
    payload = build_grading_payload(_exam_questions(), {"q-0": 1, "q-1": "2", "q-2": "Civil wars"})
    assert payload[0]["correct"] is True
    assert payload[0]["user_selected"] == "Rome"
    assert payload[1]["correct"] is False
    assert payload[1]["user_selected"] == "476 AD"
    assert payload[1]["correct_option"] == "44 BC"
    assert payload[2]["user_text"] == "Civil wars"
    assert payload[2]["model_answer"].startswith("Civil wars")


def test_grading_payload_skipped_answers():
    payload = build_grading_payload(_exam_questions(), {})
    assert payload[0]["correct"] is False
    assert payload[0]["user_selected"] == "Skipped"
    assert payload[2]["user_text"] == "No answer provided"


@pytest.mark.asyncio
async def test_grade_exam_returns_model_feedback():
    model = TestModel(custom_output_args={
        "score": 2.5,
        "total_questions": 0,
        "strengths": ["Dates"],
        "weaknesses": ["Causes"],
        "study_plan": "Review the late Republic.",
        "question_feedback": {"0": "Correct."},
    })
    feedback = await StudyMaterialsAgent(model).grade_exam("History", _exam_questions(), {"q-0": 1})
    assert feedback.score == 2.5
    assert feedback.total_questions == 3
    assert feedback.study_plan == "Review the late Republic."


@pytest.mark.asyncio
async def test_grade_exam_failure_returns_fallback():
    feedback = await StudyMaterialsAgent(_broken_model()).grade_exam("History", _exam_questions(), {})
    assert feedback == grading_fallback(3)
    assert feedback.score == 0
    assert feedback.weaknesses == ["Grading system unavailable"]
    assert feedback.study_plan == "Please try again later."
