"""Tutoring sessions — per-session controller and the process-wide registry.

A :class:`SessionController` owns everything one learner session needs:
its :class:`TopicStore`, :class:`SessionSnapshotHolder`, the stateful
:class:`ConversationEngine` and the :class:`AgentOrchestrator` that ties
them together.  Sessions never share topic state.

The :class:`SessionRegistry` keeps controllers in memory with TTL
expiration and hands out one shared :class:`EnrichmentQueue`, so the
number of background jobs is bounded per process rather than per session.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Callable

from agents.classifier import TopicShiftClassifier
from agents.lesson import LessonAgent
from agents.materials import StudyMaterialsAgent
from agents.orchestrator import AgentOrchestrator
from agents.research import ResearchAgent
from agents.tutor import ConversationEngine
from config.prompts.tutor import WELCOME_MESSAGE
from errors.exceptions import SessionNotFoundError
from models.session import AgentMode, SessionSnapshot
from models.study import ExamFeedback
from models.topic import ChatMessage, ExamQuestion, Flashcard, QuizQuestion, Topic, TopicContent
from models.turn import TurnRequest, TurnResult
from services.enrichment import EnrichmentQueue
from services.session_snapshot import SessionSnapshotHolder
from services.topic_store import TopicStore

logger = logging.getLogger(__name__)

# Recent chat turns handed to the classifier when the client sends none.
DEFAULT_RECENT_HISTORY = 5


def generate_session_id() -> str:
    return f"session-{uuid.uuid4().hex[:12]}"


class SessionController:
    """One tutoring session: topic state, lesson snapshot and turn pipeline.

    Every mutating operation takes :attr:`lock`, so turns, slide advances
    and material generation of one session run in submission order.
    """

    def __init__(
        self,
        session_id: str | None = None,
        *,
        model=None,
        enrichment: EnrichmentQueue | None = None,
        classifier: TopicShiftClassifier | None = None,
        researcher: ResearchAgent | None = None,
        materials: StudyMaterialsAgent | None = None,
        lesson: LessonAgent | None = None,
    ) -> None:
        self.session_id = session_id or generate_session_id()
        self.snapshots = SessionSnapshotHolder()
        self.store = TopicStore(self.snapshots)
        self.lock = asyncio.Lock()

        self._model = model
        self.enrichment = enrichment
        self.classifier = classifier or TopicShiftClassifier(model)
        self.researcher = researcher or ResearchAgent(model)
        self.materials = materials or StudyMaterialsAgent(model)
        self.lesson = lesson or LessonAgent(model)

        self.engine: ConversationEngine | None = None
        self.orchestrator: AgentOrchestrator | None = None
        # Chat exchanged since the current slide was shown
        self._slide_chat: list[ChatMessage] = []

        self.created_at = time.time()
        self.updated_at = self.created_at

    def touch(self) -> None:
        self.updated_at = time.time()

    def _attach_engine(self, topic: str, history: tuple[ChatMessage, ...] = ()) -> None:
        self.engine = ConversationEngine(topic, history, model=self._model)
        self.orchestrator = AgentOrchestrator(
            self.store,
            self.engine,
            self.classifier,
            self.researcher,
            materials=self.materials,
            enrichment=self.enrichment,
        )

    # ── Lifecycle ────────────────────────────────────────────

    async def start(self, topic: str) -> SessionSnapshot:
        """Begin a lesson on *topic*: fresh store, first slide, welcome message.

        Raises:
            MaterialGenerationError: the first slide could not be generated.
                The session is left untouched.
        """
        topic = topic.strip()
        async with self.lock:
            slide = await self.lesson.initial_slide(topic)

            main = self.store.reset(topic)
            self._attach_engine(topic)
            welcome = ChatMessage(role="model", text=WELCOME_MESSAGE.format(topic=topic))
            self.store.append_message(main.id, welcome)
            self._slide_chat = []

            snapshot = SessionSnapshot(
                slides=(slide,),
                current_slide_index=0,
                lesson_context="",
                chat_history=(welcome,),
                current_topic_name=topic,
                agent_mode=AgentMode.TUTOR,
            )
            self.snapshots.set(snapshot)
            self.touch()
        logger.info("Session %s started on %r", self.session_id, topic)
        return snapshot

    # ── Reads ────────────────────────────────────────────────

    def list_topics(self) -> list[Topic]:
        return self.store.list_topics()

    def get_active_topic(self) -> Topic | None:
        return self.store.get_active()

    def get_topic(self, topic_id: str) -> Topic | None:
        return self.store.get(topic_id)

    def get_topic_content(self, topic_id: str) -> TopicContent:
        return self.store.get_topic_content(topic_id)

    def get_knowledge_base(self, topic_id: str) -> str:
        return self.store.get_knowledge_base(topic_id)

    def get_session_snapshot(self) -> SessionSnapshot | None:
        return self.snapshots.get()

    # ── Snapshot restore ─────────────────────────────────────

    def set_session_snapshot(self, snapshot: SessionSnapshot) -> None:
        """Replace the session view wholesale.

        A session without a conversation engine (never started) is rebuilt
        around the snapshot: its topic becomes the main topic and the
        engine is seeded with the snapshot's chat history.
        """
        if self.engine is None and snapshot.current_topic_name:
            self.store.reset(snapshot.current_topic_name)
            self._attach_engine(snapshot.current_topic_name, snapshot.chat_history)
            logger.info(
                "Session %s restored with %d prior message(s)",
                self.session_id,
                len(snapshot.chat_history),
            )
        self.snapshots.set(snapshot)
        self.touch()

    # ── Turns ────────────────────────────────────────────────

    async def process_turn(self, request: TurnRequest) -> TurnResult:
        """Run one learner turn and fold it into the snapshot.

        Raises:
            SynthesisError: the tutor could not answer.  The learner's
                message is kept in both the store and the snapshot.
        """
        if self.orchestrator is None:
            raise SessionNotFoundError(self.session_id)

        async with self.lock:
            snapshot = self.snapshots.get() or SessionSnapshot()
            anchor = request.lesson_anchor
            if anchor is None:
                anchor = snapshot.current_slide.title if snapshot.current_slide else ""
            history = request.recent_history or list(snapshot.chat_history[-DEFAULT_RECENT_HISTORY:])

            user_message = ChatMessage(role="user", text=request.message)
            self._slide_chat.append(user_message)
            self.touch()
            try:
                result = await self.orchestrator.process_turn(
                    request.message,
                    mode=request.mode,
                    recent_history=history,
                    lesson_anchor=anchor,
                )
            except Exception:
                # a shift may already have been applied to the store
                active = self.store.get_active()
                self.snapshots.set(
                    snapshot.with_messages(user_message).model_copy(
                        update={
                            "current_topic_name": active.name if active else snapshot.current_topic_name,
                            "agent_mode": request.mode,
                        }
                    )
                )
                raise

            self._slide_chat.append(result.response)
            self.snapshots.set(
                snapshot.with_messages(user_message, result.response).model_copy(
                    update={
                        "current_topic_name": result.shift_info.topic_name,
                        "agent_mode": request.mode,
                    }
                )
            )
        return result

    # ── Lesson flow ──────────────────────────────────────────

    async def next_slide(self) -> SessionSnapshot:
        """Advance the lesson by one slide.

        Inside already generated slides only the index moves.  Past the
        last slide the discussion is summarised into the active topic's
        knowledge base and the lesson context, then a new slide is made.
        """
        async with self.lock:
            snapshot = self.snapshots.get()
            if snapshot is None or snapshot.current_slide is None:
                raise SessionNotFoundError(self.session_id)

            if snapshot.current_slide_index < len(snapshot.slides) - 1:
                snapshot = snapshot.model_copy(
                    update={"current_slide_index": snapshot.current_slide_index + 1}
                )
                self._slide_chat = []
                self.snapshots.set(snapshot)
                return snapshot

            current = snapshot.current_slide
            summary = await self.lesson.summarize_discussion(current.title, self._slide_chat)
            active = self.store.get_active()
            if active is not None:
                self.store.append_knowledge(active.id, summary)
            lesson_context = f'{snapshot.lesson_context}\n- Slide "{current.title}" Summary: {summary}'

            topic = snapshot.current_topic_name or self.store.main_topic_name or current.title
            slide = await self.lesson.next_slide(topic, current.title, lesson_context)

            notice = ChatMessage(
                role="model", text=f"Moving on! Here is a new slide about **{slide.title}**."
            )
            snapshot = snapshot.with_messages(notice).model_copy(
                update={
                    "slides": snapshot.slides + (slide,),
                    "current_slide_index": len(snapshot.slides),
                    "lesson_context": lesson_context,
                }
            )
            self._slide_chat = []
            self.snapshots.set(snapshot)
            self.touch()
        return snapshot

    def update_notebook(self, content: str) -> Topic | None:
        """Store notebook text on the active topic; returns that topic."""
        active = self.store.get_active()
        if active is None:
            return None
        self.store.set_notebook_content(active.id, content)
        self.touch()
        return self.store.get(active.id)

    # ── Rendered media ───────────────────────────────────────

    def set_slide_image(self, index: int, image_url: str) -> SessionSnapshot | None:
        """Attach an externally rendered image to slide *index*.

        Returns the new snapshot, or ``None`` when there is no such slide.
        """
        snapshot = self.snapshots.get()
        if snapshot is None or not 0 <= index < len(snapshot.slides):
            return None
        slide = snapshot.slides[index].model_copy(update={"image_url": image_url})
        self.touch()
        return self.snapshots.replace_slide(index, slide)

    def set_topic_video(self, topic_id: str, uri: str | None) -> Topic | None:
        self.store.set_video_uri(topic_id, uri)
        self.touch()
        return self.store.get(topic_id)

    # ── Study materials ──────────────────────────────────────

    async def flashcards(self, topic_id: str, regenerate: bool = False) -> list[Flashcard]:
        async with self.lock:
            topic = self.store.get(topic_id)
            if topic is None:
                return []
            if topic.flashcards and not regenerate:
                return topic.flashcards
            cards = await self.materials.generate_flashcards(
                topic.name, self.store.get_knowledge_base(topic_id)
            )
            self.store.add_flashcards(topic_id, cards)
            return self.store.get_topic_content(topic_id).flashcards

    async def quiz(self, topic_id: str, regenerate: bool = False) -> list[QuizQuestion]:
        async with self.lock:
            topic = self.store.get(topic_id)
            if topic is None:
                return []
            if topic.quizzes and not regenerate:
                return topic.quizzes
            questions = await self.materials.generate_quiz(
                topic.name, self.store.get_knowledge_base(topic_id)
            )
            self.store.add_quizzes(topic_id, questions)
            return self.store.get_topic_content(topic_id).quizzes

    async def exam(self, topic_id: str, regenerate: bool = False) -> list[ExamQuestion]:
        """Return the topic's exam, generating it at most once unless *regenerate*."""
        async with self.lock:
            topic = self.store.get(topic_id)
            if topic is None:
                return []
            if topic.exam_questions and not regenerate:
                return topic.exam_questions
            questions = await self.materials.generate_exam(
                topic.name, self.store.get_knowledge_base(topic_id)
            )
            self.store.set_exam_questions(topic_id, questions)
            return self.store.get_exam_questions(topic_id)

    async def grade_exam(self, topic_id: str, answers: dict[str, int | str]) -> ExamFeedback:
        topic = self.store.get(topic_id)
        questions = self.store.get_exam_questions(topic_id)
        name = topic.name if topic else ""
        return await self.materials.grade_exam(name, questions, answers)


# ── Registry ─────────────────────────────────────────────────


class SessionRegistry:
    """In-memory session registry with TTL expiration."""

    def __init__(
        self,
        ttl_seconds: int = 7200,
        enrichment: EnrichmentQueue | None = None,
        controller_factory: Callable[..., SessionController] = SessionController,
    ) -> None:
        self._sessions: dict[str, SessionController] = {}
        self._ttl = ttl_seconds
        self.enrichment = enrichment
        self._factory = controller_factory

    def _is_expired(self, session: SessionController) -> bool:
        return (time.time() - session.updated_at) > self._ttl

    async def create(self, topic: str) -> SessionController:
        """Create a session and start its lesson on *topic*."""
        controller = self._factory(enrichment=self.enrichment)
        await controller.start(topic)
        self._sessions[controller.session_id] = controller
        return controller

    def get(self, session_id: str) -> SessionController:
        """Look up a live session.

        Raises:
            SessionNotFoundError: unknown or expired id.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if self._is_expired(session):
            del self._sessions[session_id]
            logger.debug("Session expired: %s", session_id)
            raise SessionNotFoundError(session_id)
        return session

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def cleanup_expired(self) -> int:
        expired = [sid for sid, s in self._sessions.items() if self._is_expired(s)]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("Cleaned up %d expired tutoring sessions", len(expired))
        return len(expired)

    @property
    def size(self) -> int:
        """Number of sessions currently stored (may include expired)."""
        return len(self._sessions)


# ── Module-level Singleton ───────────────────────────────────

_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    """Get the singleton session registry instance."""
    global _registry
    if _registry is None:
        from config.settings import get_settings

        settings = get_settings()
        enrichment = None
        if settings.enrichment_enabled:
            enrichment = EnrichmentQueue(
                max_concurrency=settings.enrichment_max_concurrency,
                max_pending=settings.enrichment_max_pending,
            )
        _registry = SessionRegistry(ttl_seconds=settings.session_ttl, enrichment=enrichment)
        logger.info(
            "Initialized SessionRegistry (TTL=%ds, enrichment=%s)",
            settings.session_ttl,
            "on" if enrichment else "off",
        )
    return _registry


async def periodic_cleanup(interval_seconds: int = 300) -> None:
    """Background task that periodically evicts expired sessions.

    Should be started as an ``asyncio.Task`` in the FastAPI lifespan.
    """
    registry = get_session_registry()
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            registry.cleanup_expired()
        except Exception:
            logger.exception("Session registry cleanup failed")
