"""Study materials prompts — flashcards, quizzes, exams and grading.

All builders take an optional learning *context* (a topic's knowledge
base).  When present, the generated material must stay within it.
"""

from __future__ import annotations

import json

MATERIALS_SYSTEM_PROMPT = """\
You are an expert teacher who writes study materials.  Keep every item
accurate, unambiguous and self-contained.  Multiple-choice questions have
exactly four options and one correct answer; `correct_answer_index` is the
zero-based index of that option.
"""


def build_micro_set_prompt(
    topic_name: str, context: str, flashcard_count: int, quiz_count: int
) -> str:
    """Small post-turn bundle grounded in one question/answer exchange."""
    return (
        f"Generate {flashcard_count} study flashcards and {quiz_count} multiple choice "
        f'quiz questions strictly based on this topic: "{topic_name}" '
        f'and context: "{context}".'
    )


def build_flashcards_prompt(topic: str, context: str = "", count: int = 8) -> str:
    if context.strip():
        return (
            f"Generate {count} study flashcards specifically based on the following "
            "material the user has learned:\n\n"
            f"LEARNING CONTEXT:\n{context}\n\n"
            "Ensure the flashcards reinforce THESE specific concepts."
        )
    return f'Generate {count} study flashcards for the topic "{topic}".'


def build_quiz_prompt(topic: str, context: str = "", count: int = 5) -> str:
    if context.strip():
        return (
            f"Generate a {count}-question multiple choice quiz based specifically on "
            "the following material the user has learned:\n\n"
            f"LEARNING CONTEXT:\n{context}\n\n"
            "Ensure questions test understanding of THESE specific details."
        )
    return f'Generate a {count}-question multiple choice quiz for the topic "{topic}".'


def build_exam_prompt(topic: str, context: str = "") -> str:
    requirements = (
        "Requirements:\n"
        '1. Create 5 Multiple Choice Questions (type: "MCQ").\n'
        '2. Create 2 Short Note/Essay Questions (type: "SHORT_ANSWER").\n'
        "3. For Short Answer questions, provide a `model_answer` field containing "
        "the key points or expected answer.\n"
        "4. Questions should be challenging and test deep understanding."
    )
    if context.strip():
        return (
            f'Create a comprehensive 7-question final exam for the subject "{topic}".\n\n'
            "The exam MUST be based ONLY on the following material the user has studied:\n"
            f"{context}\n\n{requirements}"
        )
    return f'Create a difficult, comprehensive 7-question final exam for the subject "{topic}".\n\n{requirements}'


GRADER_SYSTEM_PROMPT = """\
You are an expert professor grading a final exam.

Scoring:
- MCQ: 1 point if `correct` is true, otherwise 0.
- SHORT_ANSWER: 0.0 to 1.0 depending on how well `user_text` matches
  `model_answer`.

Provide specific feedback for EACH question keyed by its zero-based index,
summarize overall strengths and weaknesses, and write a short study plan.
"""


def build_grading_input(topic: str, payload: list[dict]) -> str:
    return (
        f'Exam subject: "{topic}"\n\n'
        "Student submission data:\n"
        f"{json.dumps(payload, indent=2, ensure_ascii=False)}"
    )
