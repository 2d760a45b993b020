"""AgentOrchestrator — per-turn routing between the tutor and its child producers.

One learner turn runs strictly in order::

    CLASSIFY → ROUTE → SYNTHESIZE → PERSIST → ENRICH (detached)

- **CLASSIFY**: the topic shift classifier judges the utterance against the
  active topic.  A classifier failure is treated as "no shift".
- **ROUTE**: the interaction mode picks a child producer (research,
  notebook or none).  Its output, the pivot note and the slide anchor are
  folded into a single composite message.
- **SYNTHESIZE**: the session's :class:`ConversationEngine` answers.  This
  is the only step whose failure ends the turn.
- **PERSIST**: the learner message belongs to the topic active *before*
  classification and is written before synthesis; the tutor reply belongs
  to the topic active *after* a shift has been applied.
- **ENRICH**: a small flashcard/quiz bundle for the post-shift topic is
  submitted to the :class:`EnrichmentQueue`; the turn never waits for it.
"""

from __future__ import annotations

import logging
from typing import Sequence

from agents.classifier import TopicShiftClassifier
from agents.materials import StudyMaterialsAgent
from agents.notebook import notebook_answer
from agents.research import ResearchAgent
from agents.tutor import ConversationEngine
from config.prompts.research import RESEARCH_UNAVAILABLE, build_research_context
from config.prompts.tutor import build_pivot_note, build_turn_message
from errors.exceptions import ClassificationError, SynthesisError
from models.session import AgentMode
from models.topic import ChatMessage, Source
from models.turn import ShiftInfo, TopicAnalysis, TurnResult
from services.enrichment import EnrichmentQueue
from services.topic_store import TopicStore

logger = logging.getLogger(__name__)


def build_enrichment_seed(utterance: str, response: str) -> str:
    return f"User asked: {utterance}. Model Answered: {response}"


class AgentOrchestrator:
    """Runs learner turns against one session's topic store."""

    def __init__(
        self,
        store: TopicStore,
        engine: ConversationEngine,
        classifier: TopicShiftClassifier,
        researcher: ResearchAgent,
        materials: StudyMaterialsAgent | None = None,
        enrichment: EnrichmentQueue | None = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.classifier = classifier
        self.researcher = researcher
        self.materials = materials
        self.enrichment = enrichment

    async def process_turn(
        self,
        utterance: str,
        mode: AgentMode = AgentMode.TUTOR,
        recent_history: Sequence[ChatMessage] = (),
        lesson_anchor: str = "",
    ) -> TurnResult:
        """Run one learner turn and return the tutor's reply.

        Raises:
            SynthesisError: the conversation engine failed.  The learner
                message stays persisted; no reply is written.
        """
        previous = self.store.get_active()
        previous_id = previous.id if previous else None
        previous_name = previous.name if previous else (self.store.main_topic_name or "")

        # ── CLASSIFY ──
        analysis = await self._classify(previous_name, utterance, recent_history)

        # The question stays attributed to the topic that was active when it was asked.
        if previous_id is not None:
            self.store.append_message(previous_id, ChatMessage(role="user", text=utterance))

        if analysis.is_new_topic:
            topic = self.store.create_or_get(analysis.topic_name)
            self.store.set_active(topic.id)
            logger.info("Topic shift: %r -> %r (%s)", previous_name, topic.name, topic.id)

        active = self.store.get_active()
        active_id = active.id if active else None
        active_name = active.name if active else analysis.topic_name

        # ── ROUTE ──
        child_context, sources = await self._produce_context(
            mode, utterance, active.notebook_content if active else ""
        )
        turn_message = build_turn_message(
            utterance,
            lesson_anchor=lesson_anchor,
            pivot_note=build_pivot_note(active_name) if analysis.is_new_topic else "",
            child_context=child_context,
        )

        # ── SYNTHESIZE ──
        try:
            text = await self.engine.synthesize(turn_message)
        except SynthesisError as exc:
            exc.topic_id = previous_id
            logger.error("Turn failed during synthesis (topic=%s): %s", previous_id, exc)
            raise

        # ── PERSIST ──
        response = ChatMessage(role="model", text=text, sources=sources or None)
        if active_id is not None:
            self.store.append_message(active_id, response)

        # ── ENRICH ──
        if active_id is not None:
            self._schedule_enrichment(active_id, active_name, build_enrichment_seed(utterance, text))

        return TurnResult(
            response=response,
            analysis=analysis,
            shift_info=ShiftInfo(
                is_new_topic=analysis.is_new_topic,
                topic_name=active_name,
                previous_topic_name=previous_name,
                topic_id=active_id,
            ),
            sources=sources,
        )

    async def _classify(
        self,
        current_topic: str,
        utterance: str,
        history: Sequence[ChatMessage],
    ) -> TopicAnalysis:
        try:
            return await self.classifier.classify(current_topic, utterance, history)
        except ClassificationError as exc:
            logger.warning("Classifier unavailable, assuming no shift: %s", exc)
            return TopicAnalysis(is_new_topic=False, topic_name=current_topic)

    async def _produce_context(
        self,
        mode: AgentMode,
        utterance: str,
        notebook_text: str,
    ) -> tuple[str, list[Source]]:
        """Child producer output for *mode*.  Producer failures degrade, never raise."""
        if mode == AgentMode.RESEARCH:
            try:
                result = await self.researcher.research(utterance)
            except Exception:
                logger.warning("Research producer failed", exc_info=True)
                return build_research_context(utterance, RESEARCH_UNAVAILABLE), []
            return build_research_context(utterance, result.text), list(result.sources)

        if mode == AgentMode.NOTEBOOK:
            try:
                return await notebook_answer(notebook_text, utterance), []
            except Exception:
                logger.warning("Notebook producer failed", exc_info=True)
                return "", []

        return "", []

    def _schedule_enrichment(self, topic_id: str, topic_name: str, seed: str) -> None:
        if self.materials is None or self.enrichment is None:
            return

        materials = self.materials
        store = self.store

        async def job() -> None:
            bundle = await materials.generate_micro_materials(topic_name, seed)
            # Written to the topic captured at scheduling time, even if the
            # learner has moved on since.
            store.add_flashcards(topic_id, bundle.flashcards)
            store.add_quizzes(topic_id, bundle.quiz)
            logger.info(
                "Enrichment for %r: +%d flashcard(s), +%d quiz item(s)",
                topic_name,
                len(bundle.flashcards),
                len(bundle.quiz),
            )

        self.enrichment.submit(job, name=f"enrich:{topic_id}")
