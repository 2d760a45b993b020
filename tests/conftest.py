"""Shared pytest fixtures for the tutoring pipeline tests.

Provides:
- ``store`` / ``snapshots``: a fresh TopicStore wired to its snapshot holder
- ``history_store``: store reset to "History" (main, active)
- ``enrichment``: EnrichmentQueue shut down after the test
"""

from __future__ import annotations

import pytest

from services.enrichment import EnrichmentQueue
from services.session_snapshot import SessionSnapshotHolder
from services.topic_store import TopicStore


@pytest.fixture
def snapshots() -> SessionSnapshotHolder:
    return SessionSnapshotHolder()


@pytest.fixture
def store(snapshots) -> TopicStore:
    return TopicStore(snapshots)


@pytest.fixture
def history_store(store) -> TopicStore:
    """Store whose main and active topic is "History"."""
    store.reset("History")
    return store


@pytest.fixture
async def enrichment():
    queue = EnrichmentQueue(max_concurrency=2, max_pending=8)
    yield queue
    await queue.shutdown()
