"""Awardee profile endpoints used by the self-service edit flow."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import get_avatar_storage, get_awardee_repository
from app.api.rate_limit import RateLimiter
from app.api.routes.errors import map_error_code
from app.clients.errors import CollaboratorError
from app.config import settings
from app.models.awardee import ProfileUpdate
from app.observability.metrics import metrics
from app.services.errors import ServiceError
from app.services.repositories import AwardeeRepository
from app.services.self_service.adapters import RepositoryProfileStore
from app.services.self_service.verification import VerificationGate, VerificationStatus
from app.services.storage import AvatarStorage, build_object_key

logger = logging.getLogger(__name__)
router = APIRouter()

_rate_limiter = RateLimiter(
    max_requests=settings.verify_rate_limit_max_requests,
    window_seconds=settings.verify_rate_limit_window_seconds,
)


class VerifyEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    awardee_id: str | None = Field(default=None, alias="awardeeId")
    email: str | None = None


class SelfUpdateRequest(ProfileUpdate):
    id: str | None = None


def _ensure_self_service_enabled() -> None:
    if not settings.self_service_enabled:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Self-service profile editing is currently disabled.",
        )


def _raise_service_error(exc: ServiceError, event: str, **context: Any) -> None:
    logger.error(event, extra={**context, "code": exc.code, "error": str(exc)})
    raise HTTPException(status_code=map_error_code(exc.code), detail="Request failed") from exc


@router.get("/awardees/by-slug/{slug}")
async def get_public_profile(
    slug: str, awardees: AwardeeRepository = Depends(get_awardee_repository)
) -> dict[str, Any]:
    """Public profile; hidden profiles read as not found."""
    try:
        profile = awardees.get_by_slug(slug)
    except ServiceError as exc:
        _raise_service_error(exc, "awardees.public.load_failed", slug=slug)
    if profile is None or not profile.is_public:
        raise HTTPException(status_code=404, detail="Awardee not found")
    return {"success": True, "awardee": profile.public_view()}


@router.get("/awardees/{awardee_id}")
async def get_profile(
    awardee_id: str, awardees: AwardeeRepository = Depends(get_awardee_repository)
) -> dict[str, Any]:
    """Profile for the edit page; the contact email is only hinted at."""
    try:
        profile = awardees.get(awardee_id)
    except ServiceError as exc:
        _raise_service_error(exc, "awardees.load_failed", awardee_id=awardee_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Awardee not found")
    return {"success": True, "awardee": profile.edit_view()}


@router.post("/awardees/verify-email")
async def verify_email(
    payload: VerifyEmailRequest, awardees: AwardeeRepository = Depends(get_awardee_repository)
) -> dict[str, Any]:
    """Check the claimed email against the one on file for the awardee."""
    if not payload.awardee_id or not payload.email:
        raise HTTPException(status_code=400, detail="Awardee ID and email are required")
    _ensure_self_service_enabled()
    retry_after = _rate_limiter.check((payload.awardee_id, "verify"))
    if retry_after is not None:
        logger.warning("awardees.verify.rate_limited", extra={"awardee_id": payload.awardee_id})
        raise HTTPException(
            status_code=429,
            detail="Too many verification attempts. Please wait and try again.",
            headers={"Retry-After": str(int(retry_after) + 1)},
        )

    store = RepositoryProfileStore(awardees)
    result = VerificationGate(store).verify(payload.awardee_id, payload.email)
    if result.status is VerificationStatus.UNAVAILABLE:
        raise HTTPException(status_code=503, detail=result.reason)
    if result.status is VerificationStatus.NOT_VERIFIED:
        raise HTTPException(status_code=403, detail=result.reason)
    try:
        profile = store.get_profile(payload.awardee_id)
    except CollaboratorError:
        profile = None
    return {
        "success": True,
        "verified": True,
        "message": result.reason,
        "name": profile.name if profile else None,
    }


@router.put("/awardees/self-update")
async def self_update(
    payload: SelfUpdateRequest, awardees: AwardeeRepository = Depends(get_awardee_repository)
) -> dict[str, Any]:
    """Update the whitelisted self-service fields of a profile."""
    if not payload.id:
        raise HTTPException(status_code=400, detail="Awardee ID is required")
    _ensure_self_service_enabled()
    changes = payload.changes()
    changes.pop("id", None)
    try:
        updated = awardees.update(payload.id, changes)
    except ServiceError as exc:
        _raise_service_error(exc, "awardees.self_update.failed", awardee_id=payload.id)
    if updated is None:
        raise HTTPException(status_code=404, detail="Awardee not found")
    metrics.increment("awardees.self_update.persisted")
    logger.info(
        "awardees.self_update.persisted",
        extra={"awardee_id": payload.id, "fields": sorted(changes)},
    )
    return {
        "success": True,
        "message": "Profile updated successfully",
        "awardee": updated.edit_view(),
    }


@router.post("/awardees/upload-image")
async def upload_image(
    image: UploadFile | None = File(default=None),
    awardee_id: str | None = Form(default=None),
    awardees: AwardeeRepository = Depends(get_awardee_repository),
    storage: AvatarStorage = Depends(get_avatar_storage),
) -> dict[str, Any]:
    """Store a self-service avatar and return its public URL."""
    if image is None:
        raise HTTPException(status_code=400, detail="No image provided")
    if not awardee_id:
        raise HTTPException(status_code=400, detail="Awardee ID is required")
    content_type = image.content_type or ""
    if content_type not in settings.avatar_allowed_content_types:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Please upload JPG, PNG, WebP, or GIF.",
        )
    content = await image.read(settings.avatar_max_bytes + 1)
    if len(content) > settings.avatar_max_bytes:
        limit_mb = settings.avatar_max_bytes // (1024 * 1024)
        raise HTTPException(status_code=400, detail=f"File too large. Maximum size is {limit_mb}MB.")

    try:
        if awardees.get(awardee_id) is None:
            raise HTTPException(status_code=404, detail="Awardee not found")
        key = build_object_key(awardee_id, image.filename, content_type)
        image_url = storage.put(key, content, content_type)
    except ServiceError as exc:
        _raise_service_error(exc, "awardees.upload.failed", awardee_id=awardee_id)

    metrics.increment("awardees.upload.persisted")
    logger.info("awardees.upload.persisted", extra={"awardee_id": awardee_id, "key": key})
    return {"success": True, "message": "Image uploaded successfully", "imageUrl": image_url}
