"""Notebook child agent context templates."""

from __future__ import annotations

NOTEBOOK_EMPTY_CONTEXT = (
    "[DATA FROM NOTEBOOK AGENT]: The user has not uploaded any notes yet. "
    "Remind them to paste their content to use this feature."
)


def build_notebook_context(notes: str, query: str, truncated: bool) -> str:
    """Wrap the learner's notes with an answer-only-from-notes instruction."""
    marker = " ... (content truncated for context)" if truncated else ""
    return (
        "[DATA FROM NOTEBOOK AGENT]:\n"
        "The user has provided the following personal notes/documents:\n"
        f'"""\n{notes}{marker}\n"""\n\n'
        f'Instructions: Answer the user\'s question "{query}" strictly based on '
        "the provided notes above. If the answer isn't in the notes, say so."
    )
