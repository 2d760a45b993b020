"""FastAPI entry point for the MindSpark tutoring service."""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_settings
from services.concurrency import ConcurrencyLimitMiddleware
from services.middleware import RequestIdMiddleware, configure_logging
from services.session_registry import get_session_registry, periodic_cleanup

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle — start/stop shared resources."""
    registry = get_session_registry()
    cleanup_task = asyncio.create_task(periodic_cleanup(interval_seconds=300))

    yield

    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass

    if registry.enrichment is not None:
        await registry.enrichment.shutdown()


app = FastAPI(
    title="MindSpark Tutor Agents",
    description="Multi-topic AI tutoring sessions with topic shift detection",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack ──────────────────────────────────────────
# add_middleware wraps the app, so the last one added runs first.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(ConcurrencyLimitMiddleware)

# ── Register routers ────────────────────────────────────────
from api.health import router as health_router  # noqa: E402
from api.session import router as session_router  # noqa: E402

app.include_router(health_router)
app.include_router(session_router)


if __name__ == "__main__":
    # Sessions live in process memory, so a single worker is required.
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
        log_level=settings.log_level,
    )
