"""Health check endpoint."""

from fastapi import APIRouter

from config.settings import get_settings
from services.session_registry import get_session_registry

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health():
    settings = get_settings()
    registry = get_session_registry()
    return {
        "status": "healthy",
        "sessions": registry.size,
        "enrichmentPending": registry.enrichment.pending if registry.enrichment else 0,
        "defaultModel": settings.default_model,
    }
