"""Domain-specific exceptions for the tutoring session engine.

These exceptions let the orchestrator and API layers distinguish between
failure modes that degrade gracefully (classification, child producers,
enrichment) and those that end the learner's turn (synthesis).
"""

from __future__ import annotations


class TutorError(Exception):
    """Base class for tutoring pipeline errors."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"{stage} failed: {message}")


class ClassificationError(TutorError):
    """The topic shift classifier call failed; callers fall back to no shift."""

    def __init__(self, message: str) -> None:
        super().__init__("classification", message)


class ProducerError(TutorError):
    """A child context producer (research, notebook) could not produce context.

    Never crosses the turn boundary: the orchestrator substitutes a degraded
    context block and continues without citations.
    """

    def __init__(self, producer: str, message: str) -> None:
        self.producer = producer
        super().__init__(f"producer '{producer}'", message)


class SynthesisError(TutorError):
    """The conversation engine failed to answer.

    The only failure that is surfaced to the learner.  The learner's
    message has already been persisted when this is raised; the tutor
    reply is not.
    """

    def __init__(self, message: str, topic_id: str | None = None) -> None:
        self.topic_id = topic_id
        super().__init__("synthesis", message)


class EnrichmentError(TutorError):
    """Background flashcard/quiz enrichment failed.  Logged, never surfaced."""

    def __init__(self, topic_name: str, message: str) -> None:
        self.topic_name = topic_name
        super().__init__(f"enrichment for '{topic_name}'", message)


class MaterialGenerationError(TutorError):
    """On-demand study material (slides, flashcards, quiz, exam) generation failed."""

    def __init__(self, material: str, message: str) -> None:
        self.material = material
        super().__init__(f"{material} generation", message)


class SessionNotFoundError(TutorError):
    """A referenced tutoring session does not exist or has expired."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__("session lookup", f"session '{session_id}' not found")
