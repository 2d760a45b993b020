"""Session snapshot models — where the learner currently is.

The snapshot is a value object: every meaningful update produces a new
instance that replaces the previous one wholesale.  Slides are updated by
index through :meth:`SessionSnapshot.with_slide`, which returns a copy.
"""

from __future__ import annotations

from enum import Enum

from models.base import CamelModel, FrozenCamelModel
from models.topic import ChatMessage


class AgentMode(str, Enum):
    """Interaction mode selected by the learner."""

    TUTOR = "TUTOR"  # Standard parent agent, no child producer
    RESEARCH = "RESEARCH"  # Web-grounded research producer
    NOTEBOOK = "NOTEBOOK"  # Answers grounded in the learner's notes


class LessonSlide(FrozenCamelModel):
    """One lesson unit.  Image fields are filled by an external renderer."""

    title: str
    content: str
    image_prompt: str = ""
    image_url: str | None = None


class SessionSnapshot(FrozenCamelModel):
    """Full session view consumed by the presentation layer."""

    slides: tuple[LessonSlide, ...] = ()
    current_slide_index: int = 0
    lesson_context: str = ""
    chat_history: tuple[ChatMessage, ...] = ()
    current_topic_name: str = ""
    agent_mode: AgentMode = AgentMode.TUTOR

    @property
    def current_slide(self) -> LessonSlide | None:
        if 0 <= self.current_slide_index < len(self.slides):
            return self.slides[self.current_slide_index]
        return None

    def with_slide(self, index: int, slide: LessonSlide) -> SessionSnapshot:
        """Return a copy with the slide at *index* replaced.

        Out-of-range indices return ``self`` unchanged.
        """
        if not 0 <= index < len(self.slides):
            return self
        slides = list(self.slides)
        slides[index] = slide
        return self.model_copy(update={"slides": tuple(slides)})

    def with_messages(self, *messages: ChatMessage) -> SessionSnapshot:
        """Return a copy with *messages* appended to the chat transcript."""
        return self.model_copy(
            update={"chat_history": self.chat_history + tuple(messages)}
        )



class SessionStarted(CamelModel):
    """POST /api/sessions — response body."""

    session_id: str
    snapshot: SessionSnapshot
