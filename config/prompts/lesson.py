"""Lesson prompts — slide generation and per-slide discussion summaries."""

from __future__ import annotations

LESSON_SYSTEM_PROMPT = """\
You are an expert teacher building a dynamic, slide-by-slide lesson.

Each slide has:
- title
- content: educational markdown, concise (about 100-150 words)
- image_prompt: a detailed description of an educational diagram, flowchart
  or infographic that explains the concept.  Describe visual elements only,
  no text inside the image.
"""

SUMMARY_SYSTEM_PROMPT = """\
You summarize tutoring discussions.  Keep it brief (1-2 sentences) and focus
on the key learning points and the student's interests.  IMPORTANT: if the
student asked about a different topic, note that specifically.
"""


def build_initial_slide_prompt(topic: str) -> str:
    return f'Create the introductory slide for a comprehensive lesson on "{topic}".'


def build_next_slide_prompt(topic: str, previous_title: str, lesson_context: str) -> str:
    return (
        f'Current Main Focus: "{topic}"\n\n'
        f"Lesson Context & Student Interests so far:\n{lesson_context or '(none yet)'}\n\n"
        f'The last slide was: "{previous_title}".\n\n'
        "Generate the NEXT logical slide.\n"
        "- If the context indicates the student shifted topics, the next slide should "
        "seamlessly introduce that new topic.\n"
        "- If staying on topic, build upon the previous concept.\n"
        "- The image prompt must request a diagram, chart or infographic style visual."
    )


def build_summary_prompt(slide_title: str, transcript: str) -> str:
    return (
        f'Summarize the discussion about "{slide_title}".\n\n'
        f"Discussion:\n{transcript}"
    )
