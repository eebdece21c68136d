from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/config/public")
async def public_config() -> dict:
    """Public client-facing limits."""
    return {
        "storage_backend": settings.storage_backend,
        "image_base_url": settings.image_base_url,
        "max_image_bytes": settings.max_image_bytes,
        "session_max_age_days": settings.session_max_age_days,
    }
