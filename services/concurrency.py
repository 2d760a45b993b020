"""Global concurrency controls for LLM calls and model-heavy endpoints.

Uses asyncio.Semaphore to cap the number of *concurrent* outbound model
requests per worker process.  Every agent call in the tutoring pipeline
(classifier, research summary, tutor synthesis, enrichment, materials)
goes through :func:`rate_limited_llm_call`.

The middleware is pure ASGI (not BaseHTTPMiddleware) so it composes with
streaming responses.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Coroutine

from starlette.types import ASGIApp, Receive, Scope, Send

from config.settings import get_settings

logger = logging.getLogger(__name__)

# ── Global LLM semaphore ─────────────────────────────────────

_llm_semaphore: asyncio.Semaphore | None = None


def _get_semaphore() -> asyncio.Semaphore:
    """Lazy-init to ensure semaphore is bound to the running event loop."""
    global _llm_semaphore
    if _llm_semaphore is None:
        limit = get_settings().llm_max_concurrency
        _llm_semaphore = asyncio.Semaphore(limit)
        logger.info("LLM concurrency semaphore initialized (max=%d)", limit)
    return _llm_semaphore


async def rate_limited_llm_call(
    func: Callable[..., Coroutine[Any, Any, Any]],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Execute an async LLM function with concurrency limiting.

    Usage::

        result = await rate_limited_llm_call(agent.run, prompt, model_settings=...)
    """
    sem = _get_semaphore()
    async with sem:
        return await func(*args, **kwargs)


# ── Heavy endpoint concurrency middleware (pure ASGI) ─────────
# Limits concurrent requests to model-heavy endpoints (turns, slide
# generation, study materials).  Requests over the limit receive 503
# instead of queuing forever.

_MAX_CONCURRENT_HEAVY = 15  # per worker
_heavy_semaphore: asyncio.Semaphore | None = None

# Path suffixes that count as "heavy" under /api/sessions/...
_HEAVY_SUFFIXES = (
    "/turns",
    "/slides/next",
    "/flashcards",
    "/quiz",
    "/exam",
    "/exam/grade",
)


def _is_heavy(method: str, path: str) -> bool:
    if method != "POST" or not path.startswith("/api/sessions"):
        return False
    return path == "/api/sessions" or path.endswith(_HEAVY_SUFFIXES)


def _get_heavy_semaphore() -> asyncio.Semaphore:
    global _heavy_semaphore
    if _heavy_semaphore is None:
        _heavy_semaphore = asyncio.Semaphore(_MAX_CONCURRENT_HEAVY)
        logger.info("Heavy endpoint semaphore initialized (max=%d)", _MAX_CONCURRENT_HEAVY)
    return _heavy_semaphore


class ConcurrencyLimitMiddleware:
    """Pure ASGI middleware — reject heavy requests when the worker is at capacity.

    Returns HTTP 503 with Retry-After header for overloaded endpoints.
    Lightweight endpoints (health, topic listing, snapshots) pass through.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not _is_heavy(
            scope.get("method", ""), scope.get("path", "")
        ):
            await self.app(scope, receive, send)
            return

        sem = _get_heavy_semaphore()

        if sem.locked():
            path = scope.get("path", "")
            logger.warning("Concurrency limit reached for %s — returning 503", path)
            body = json.dumps(
                {"detail": "Server busy — too many concurrent requests. Please retry."}
            ).encode()
            await send({
                "type": "http.response.start",
                "status": 503,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"retry-after", b"5"),
                ],
            })
            await send({
                "type": "http.response.body",
                "body": body,
            })
            return

        async with sem:
            await self.app(scope, receive, send)
