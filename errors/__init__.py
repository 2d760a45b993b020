"""Custom exception hierarchy for the tutoring session engine."""

from errors.exceptions import (
    ClassificationError,
    EnrichmentError,
    MaterialGenerationError,
    ProducerError,
    SessionNotFoundError,
    SynthesisError,
    TutorError,
)

__all__ = [
    "ClassificationError",
    "EnrichmentError",
    "MaterialGenerationError",
    "ProducerError",
    "SessionNotFoundError",
    "SynthesisError",
    "TutorError",
]
