from __future__ import annotations

from fastapi import APIRouter

from app.config import settings

router = APIRouter()


@router.get("/settings/self-service-enabled")
async def self_service_enabled() -> dict[str, bool]:
    """Whether the edit page should offer self-service at all."""
    return {"enabled": settings.self_service_enabled}
