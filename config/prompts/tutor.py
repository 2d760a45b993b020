"""Parent agent (tutor) prompts — system instruction and per-turn composite block.

The tutor is the synthesis step.  Child producers (researcher, notebook)
contribute context blocks that are folded into one turn message together
with the pivot note and the current slide anchor.
"""

from __future__ import annotations

TUTOR_SYSTEM_PROMPT = """\
You are MindSpark, a friendly and adaptive AI tutor.

## Your Architecture

You are the "Parent Agent".  Child agents (Researcher, Notebook) may provide
you with data inside the learner's turn.

## Your Goal

Teach the learner about "{topic}".  Synthesize information provided by your
child agents into a cohesive, educational response.

## Guidelines

1. Answer questions clearly and concisely.
2. If you receive data from the [Researcher Agent], cite it naturally
   (e.g. "According to recent sources...").
3. If you receive data from the [Notebook Agent], reference the learner's
   notes (e.g. "Your notes mention that...").
4. CRITICAL: if a system note says the learner changed topic, pivot
   IMMEDIATELY to the new topic.
5. Be conversational and encouraging.
"""

WELCOME_MESSAGE = (
    "Welcome! I'm your AI tutor. We're starting with **{topic}**. "
    "Read this slide, and ask me anything!"
)


def build_tutor_prompt(topic: str) -> str:
    """Build the tutor system prompt for a session anchored on *topic*."""
    return TUTOR_SYSTEM_PROMPT.format(topic=topic)


def build_pivot_note(topic_name: str) -> str:
    """System note announcing a detected topic shift."""
    return (
        f'[SYSTEM NOTE: The user has switched context to the topic "{topic_name}". '
        "Pivot your response to focus on this new topic immediately.]"
    )


def build_turn_message(
    utterance: str,
    *,
    lesson_anchor: str = "",
    pivot_note: str = "",
    child_context: str = "",
) -> str:
    """Compose the single message sent to the conversation engine for a turn.

    Order: pivot note, current slide anchor, child producer output, query.
    Empty sections are omitted.
    """
    sections = [
        pivot_note,
        f'[Current Slide Context: "{lesson_anchor}"]' if lesson_anchor else "",
        child_context,
        f"User Query: {utterance}",
    ]
    return "\n\n".join(s for s in sections if s)
