"""Topic store — in-memory entity store for per-topic session state.

Holds every :class:`Topic` of one tutoring session plus the active-topic
pointer.  Topics are never deleted individually; :meth:`TopicStore.reset`
discards everything and creates the session's main topic.

Addressing an unknown or stale topic id is not an error: mutations become
no-ops and reads return empty defaults, so detached callbacks that race a
reset cannot fail.

Thread/task safety:
- A store-wide ``RLock`` guards the topic map, the normalized-name index
  and the active pointer, making check-then-create atomic.
- Each topic has its own lock serializing mutation of its collections.
- Reads hand out deep copies; callers never hold live store objects.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Iterable

from models.topic import (
    ChatMessage,
    ExamQuestion,
    Flashcard,
    QuizQuestion,
    Topic,
    TopicContent,
)

if TYPE_CHECKING:
    from services.session_snapshot import SessionSnapshotHolder

logger = logging.getLogger(__name__)

# Each knowledge append is stored as a new bullet line.
KNOWLEDGE_SEPARATOR = "\n- "


def normalize_topic_name(name: str) -> str:
    """Key used for case-insensitive name uniqueness."""
    return name.strip().casefold()


class TopicStore:
    """Entity store for topics and the active-topic pointer."""

    def __init__(self, snapshots: SessionSnapshotHolder | None = None) -> None:
        self._lock = threading.RLock()
        self._topics: dict[str, Topic] = {}
        self._topic_locks: dict[str, threading.Lock] = {}
        self._name_index: dict[str, str] = {}  # normalized name -> topic id
        self._active_id: str | None = None
        self._main_name: str | None = None
        self._snapshots = snapshots

    # ── Lifecycle ────────────────────────────────────────────

    def reset(self, main_name: str) -> Topic:
        """Clear all topics, create the main topic and make it active."""
        with self._lock:
            self._topics.clear()
            self._topic_locks.clear()
            self._name_index.clear()
            self._active_id = None
            self._main_name = main_name.strip()
            main = self._insert(self._main_name, is_main=True)
            self._active_id = main.id
        if self._snapshots is not None:
            self._snapshots.clear()
        logger.info("Topic store reset: main topic=%r id=%s", main.name, main.id)
        return main.model_copy(deep=True)

    @property
    def main_topic_name(self) -> str | None:
        return self._main_name

    # ── Creation & lookup ────────────────────────────────────

    def create_or_get(self, name: str, is_main: bool = False) -> Topic:
        """Return the topic named *name* (case-insensitive), creating it if absent.

        The first creation wins: a later request for an equivalent name
        returns the existing topic, whatever its casing or ``is_main`` flag.
        """
        with self._lock:
            existing_id = self._name_index.get(normalize_topic_name(name))
            if existing_id is not None:
                return self._topics[existing_id].model_copy(deep=True)
            if is_main and any(t.is_main for t in self._topics.values()):
                logger.warning(
                    "Main topic already exists — creating %r as a regular topic", name
                )
                is_main = False
            topic = self._insert(name.strip(), is_main=is_main)
            logger.info("Created topic %r id=%s main=%s", topic.name, topic.id, is_main)
            return topic.model_copy(deep=True)

    def _insert(self, name: str, is_main: bool) -> Topic:
        # Caller holds self._lock.
        topic = Topic(name=name, is_main=is_main)
        self._topics[topic.id] = topic
        self._topic_locks[topic.id] = threading.Lock()
        self._name_index[normalize_topic_name(name)] = topic.id
        return topic

    def set_active(self, topic_id: str) -> bool:
        """Point the active topic at *topic_id*.  Unknown ids are ignored."""
        with self._lock:
            if topic_id not in self._topics:
                logger.debug("set_active ignored for unknown topic id=%s", topic_id)
                return False
            self._active_id = topic_id
            return True

    def get_active(self) -> Topic | None:
        with self._lock:
            if self._active_id is None:
                return None
            topic = self._topics.get(self._active_id)
            return topic.model_copy(deep=True) if topic else None

    def get(self, topic_id: str) -> Topic | None:
        with self._lock:
            topic = self._topics.get(topic_id)
            return topic.model_copy(deep=True) if topic else None

    def get_by_name(self, name: str) -> Topic | None:
        with self._lock:
            topic_id = self._name_index.get(normalize_topic_name(name))
            if topic_id is None:
                return None
            return self._topics[topic_id].model_copy(deep=True)

    def list_topics(self) -> list[Topic]:
        """All topics: main topic first, then in creation order.

        Creation order is insertion order; ``created_at`` is not consulted.
        """
        with self._lock:
            # sorted() is stable and the dict keeps insertion order
            ordered = sorted(self._topics.values(), key=lambda t: not t.is_main)
            return [t.model_copy(deep=True) for t in ordered]

    def __len__(self) -> int:
        return len(self._topics)

    # ── Per-topic mutation ───────────────────────────────────

    def _locked(self, topic_id: str) -> tuple[Topic | None, threading.Lock | None]:
        with self._lock:
            return self._topics.get(topic_id), self._topic_locks.get(topic_id)

    def append_message(self, topic_id: str, message: ChatMessage) -> None:
        topic, lock = self._locked(topic_id)
        if topic is None:
            return
        with lock:
            topic.messages.append(message.model_copy(deep=True))

    def append_knowledge(self, topic_id: str, text: str) -> None:
        topic, lock = self._locked(topic_id)
        if topic is None:
            return
        with lock:
            topic.knowledge_base += f"{KNOWLEDGE_SEPARATOR}{text}"

    def add_flashcards(self, topic_id: str, cards: Iterable[Flashcard]) -> None:
        topic, lock = self._locked(topic_id)
        if topic is None:
            return
        with lock:
            topic.flashcards.extend(c.model_copy() for c in cards)

    def add_quizzes(self, topic_id: str, questions: Iterable[QuizQuestion]) -> None:
        topic, lock = self._locked(topic_id)
        if topic is None:
            return
        with lock:
            topic.quizzes.extend(q.model_copy(deep=True) for q in questions)

    def set_exam_questions(self, topic_id: str, questions: Iterable[ExamQuestion]) -> None:
        """Replace the topic's exam wholesale."""
        topic, lock = self._locked(topic_id)
        if topic is None:
            return
        with lock:
            topic.exam_questions = [q.model_copy(deep=True) for q in questions]

    def set_notebook_content(self, topic_id: str, content: str) -> None:
        topic, lock = self._locked(topic_id)
        if topic is None:
            return
        with lock:
            topic.notebook_content = content

    def set_video_uri(self, topic_id: str, uri: str | None) -> None:
        topic, lock = self._locked(topic_id)
        if topic is None:
            return
        with lock:
            topic.video_uri = uri

    # ── Per-topic reads ──────────────────────────────────────

    def get_exam_questions(self, topic_id: str) -> list[ExamQuestion]:
        topic, lock = self._locked(topic_id)
        if topic is None:
            return []
        with lock:
            return [q.model_copy(deep=True) for q in topic.exam_questions]

    def get_knowledge_base(self, topic_id: str) -> str:
        topic, lock = self._locked(topic_id)
        if topic is None:
            return ""
        with lock:
            return topic.knowledge_base

    def get_topic_content(self, topic_id: str) -> TopicContent:
        topic, lock = self._locked(topic_id)
        if topic is None:
            return TopicContent()
        with lock:
            return TopicContent(
                flashcards=[c.model_copy() for c in topic.flashcards],
                quizzes=[q.model_copy(deep=True) for q in topic.quizzes],
                exam_questions=[q.model_copy(deep=True) for q in topic.exam_questions],
                notebook_content=topic.notebook_content,
                knowledge_base=topic.knowledge_base,
            )
