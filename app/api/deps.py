"""Singleton accessors injected into API routes."""

from __future__ import annotations

import secrets

from fastapi import Header, HTTPException

from app.config import settings
from app.services.repositories import (
    AwardeeRepository,
    FeatureRequestRepository,
    build_awardee_repository,
    build_feature_request_repository,
)
from app.services.storage import AvatarStorage, build_avatar_storage

_AWARDEES: AwardeeRepository | None = None
_FEATURE_REQUESTS: FeatureRequestRepository | None = None
_STORAGE: AvatarStorage | None = None


def get_awardee_repository() -> AwardeeRepository:
    global _AWARDEES  # noqa: PLW0603
    if _AWARDEES is None:
        _AWARDEES = build_awardee_repository()
    return _AWARDEES


def get_feature_request_repository() -> FeatureRequestRepository:
    global _FEATURE_REQUESTS  # noqa: PLW0603
    if _FEATURE_REQUESTS is None:
        _FEATURE_REQUESTS = build_feature_request_repository()
    return _FEATURE_REQUESTS


def get_avatar_storage() -> AvatarStorage:
    global _STORAGE  # noqa: PLW0603
    if _STORAGE is None:
        _STORAGE = build_avatar_storage()
    return _STORAGE


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    """Gate admin endpoints behind ADMIN_API_KEY when one is configured."""
    expected = settings.admin_api_key
    if not expected:
        return
    if not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=401, detail="Admin credentials required")
