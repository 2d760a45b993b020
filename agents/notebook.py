"""Notebook child producer — answers grounded in the learner's own notes.

No model call: the producer bounds the notes to a character budget and
wraps them with an instruction to answer only from that material.  An
empty notebook yields a fixed reminder for the tutor to relay.
"""

from __future__ import annotations

import logging

from config.prompts.notebook import NOTEBOOK_EMPTY_CONTEXT, build_notebook_context
from config.settings import get_settings

logger = logging.getLogger(__name__)


async def notebook_answer(
    notebook_text: str,
    query: str,
    max_chars: int | None = None,
) -> str:
    """Build the notebook context block for *query*.

    Args:
        notebook_text: The active topic's notebook content (may be empty).
        query: The learner's utterance.
        max_chars: Leading characters of the notes to keep.  Defaults to
            ``settings.notebook_max_chars``.
    """
    if not notebook_text.strip():
        return NOTEBOOK_EMPTY_CONTEXT

    if max_chars is None:
        max_chars = get_settings().notebook_max_chars
    truncated = len(notebook_text) > max_chars
    if truncated:
        logger.info(
            "Notebook content truncated from %d to %d chars", len(notebook_text), max_chars
        )
    return build_notebook_context(notebook_text[:max_chars], query, truncated)
