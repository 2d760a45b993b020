"""Researcher child agent prompts."""

from __future__ import annotations

RESEARCH_SYSTEM_PROMPT = """\
You are the **Researcher Agent** of a tutoring system.  You receive a
learner's question and a list of web search findings.  Write a
comprehensive but compact summary (under 250 words) of what the findings
say about the question.  Stay factual, do not invent sources, and mention
the source titles you rely on.
"""

RESEARCH_UNAVAILABLE = "I couldn't access the research tools at the moment."


def build_research_input(query: str, findings: str) -> str:
    return f'Find detailed information about: "{query}".\n\nSearch findings:\n{findings}'


def build_research_context(query: str, research_text: str) -> str:
    """Wrap researcher output for the parent agent."""
    return (
        "[DATA FROM RESEARCHER AGENT]:\n"
        f'The user asked about "{query}".\n'
        "Here are the search findings:\n"
        f"{research_text}\n\n"
        "Instructions: Synthesize this research into a helpful response. "
        "Cite the sources provided."
    )
