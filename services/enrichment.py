"""Background enrichment queue — bounded, observable fire-and-forget jobs.

The orchestrator submits one enrichment job per completed turn (extra
flashcards and quiz items for the active topic).  Jobs run as
``asyncio.Task`` objects detached from the turn:

- at most ``max_concurrency`` jobs run at once,
- at most ``max_pending`` jobs are queued or running; further submissions
  are dropped and logged,
- failures are logged and counted, never re-raised, never retried,
- :meth:`EnrichmentQueue.drain` awaits everything in flight (tests,
  shutdown) without the turn itself ever depending on it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class EnrichmentQueue:
    """Bounded executor for best-effort background jobs."""

    def __init__(self, max_concurrency: int = 2, max_pending: int = 32) -> None:
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._max_pending = max_pending
        self._tasks: set[asyncio.Task] = set()
        self.completed = 0
        self.failed = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        """Jobs submitted but not yet finished."""
        return len(self._tasks)

    def submit(
        self,
        job: Callable[[], Awaitable[Any]],
        *,
        name: str = "enrichment",
    ) -> asyncio.Task | None:
        """Schedule *job* without awaiting it.

        Returns the task handle, or ``None`` when the queue is full.
        Must be called from inside a running event loop.
        """
        if len(self._tasks) >= self._max_pending:
            self.dropped += 1
            logger.warning(
                "Enrichment queue full (%d pending) — dropping job %s",
                len(self._tasks),
                name,
            )
            return None

        task = asyncio.create_task(self._run(job, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, job: Callable[[], Awaitable[Any]], name: str) -> None:
        async with self._semaphore:
            try:
                await job()
            except asyncio.CancelledError:
                raise
            except Exception:
                self.failed += 1
                logger.exception("Enrichment job %s failed", name)
            else:
                self.completed += 1
                logger.debug("Enrichment job %s completed", name)

    async def drain(self) -> None:
        """Wait until every submitted job (including ones submitted meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding jobs and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Enrichment queue shut down (%d job(s) cancelled)", len(tasks))
