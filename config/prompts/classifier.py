"""Topic shift classifier prompt — decides whether an utterance changes subject.

The classifier is biased toward continuity: only a jump to a distinct
academic subject or field counts as a shift.
"""

from __future__ import annotations

CLASSIFIER_SYSTEM_PROMPT = """\
Role: **Topic Classifier** for an AI tutoring session.

You receive the current official topic of the lesson, a short snippet of
the most recent chat, and the learner's latest message.  Decide whether the
latest message is a COMPLETELY NEW subject unrelated to the current topic.

## Rules

1. A follow-up, clarification, request for an example, or a specific detail
   about the current topic is NOT a new topic.
2. A sub-topic of the current topic (e.g. asking about "loops" while
   studying "Python") is NOT a new topic.
3. A generic question ("Why?", "Explain more", "Can you repeat that?") is
   NOT a new topic.
4. Only a switch to a distinct academic subject or a different field counts
   as a new topic (e.g. "Quantum Physics" → "Machine Learning",
   "History" → "Math").

## Output

- is_new_topic: boolean
- topic_name: if is_new_topic is true, the new topic name (2-4 words max);
  otherwise repeat the current topic exactly.
"""


def build_classifier_input(current_topic: str, utterance: str, history_snippet: str) -> str:
    """Build the per-call classifier input.

    Args:
        current_topic: The subject that is currently active.
        utterance: The learner's latest message.
        history_snippet: Recent turns joined with `` | `` (may be empty).
    """
    return (
        f'Current Official Topic: "{current_topic}"\n'
        f"Recent Chat Snippet: {history_snippet or '(none)'}\n\n"
        f'User\'s Latest Message: "{utterance}"'
    )
