"""Paid feature-request intake plus the admin board endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from app.api.deps import (
    get_awardee_repository,
    get_feature_request_repository,
    require_admin,
)
from app.api.routes.errors import map_error_code
from app.config import settings
from app.models.feature_request import (
    FeatureRequest,
    FeatureRequestCreate,
    FeatureRequestStatus,
    FeatureRequestUpdate,
)
from app.observability.metrics import metrics
from app.services.admin.board import compute_stats, filter_requests
from app.services.errors import ServiceError
from app.services.repositories import AwardeeRepository, FeatureRequestRepository

logger = logging.getLogger(__name__)
router = APIRouter()


class FeatureRequestBody(BaseModel):
    """Loose intake body; required fields are checked by the handler."""

    awardee_id: str | None = None
    awardee_name: str | None = None
    has_own_article: bool = False
    article_content: str | None = None
    needs_article_written: bool | None = None
    contact_email: str | None = None
    whatsapp_number: str | None = None
    amount: int | None = None
    currency: str | None = None


def _raise_service_error(exc: ServiceError, event: str, **context: Any) -> None:
    logger.error(event, extra={**context, "code": exc.code, "error": str(exc)})
    raise HTTPException(status_code=map_error_code(exc.code), detail="Request failed") from exc


@router.post("/feature-requests")
async def create_feature_request(
    payload: FeatureRequestBody,
    awardees: AwardeeRepository = Depends(get_awardee_repository),
    requests: FeatureRequestRepository = Depends(get_feature_request_repository),
) -> dict[str, Any]:
    """Record a new pending feature request for an awardee."""
    if not (
        payload.awardee_id
        and (payload.contact_email or "").strip()
        and (payload.whatsapp_number or "").strip()
    ):
        raise HTTPException(status_code=400, detail="Missing required fields")

    create = FeatureRequestCreate.model_validate(payload.model_dump())
    try:
        awardee = awardees.get(create.awardee_id)
        if awardee is None:
            raise HTTPException(status_code=404, detail="Awardee not found")
        if not create.awardee_name:
            create.awardee_name = awardee.name
        request = requests.create(
            FeatureRequest.from_create(
                create,
                amount=settings.feature_request_amount,
                currency=settings.feature_request_currency,
            )
        )
    except ServiceError as exc:
        _raise_service_error(exc, "feature_requests.create.failed", awardee_id=create.awardee_id)

    metrics.increment("feature_requests.created", tags={"has_article": str(request.has_own_article).lower()})
    logger.info(
        "feature_requests.created",
        extra={"request_id": request.id, "awardee_id": request.awardee_id},
    )
    return {
        "success": True,
        "message": "Feature request submitted successfully",
        "data": request.model_dump(mode="json"),
    }


@router.get("/feature-requests", dependencies=[Depends(require_admin)])
async def list_feature_requests(
    status: str = Query(default="all"),
    q: str = Query(default=""),
    requests: FeatureRequestRepository = Depends(get_feature_request_repository),
) -> dict[str, Any]:
    """Admin listing with status filter, search and summary counts."""
    if status != "all" and status not in {s.value for s in FeatureRequestStatus}:
        raise HTTPException(status_code=400, detail=f"Unknown status '{status}'")
    try:
        everything = requests.list()
    except ServiceError as exc:
        _raise_service_error(exc, "feature_requests.list.failed", status=status)

    visible = filter_requests(everything, status=status, query=q)
    stats = compute_stats(everything)
    return {
        "success": True,
        "data": [request.model_dump(mode="json") for request in visible],
        "stats": {
            "total": stats.total,
            "pending": stats.pending,
            "paid": stats.paid,
            "published": stats.published,
        },
    }


@router.put("/feature-requests/{request_id}", dependencies=[Depends(require_admin)])
async def update_feature_request(
    request_id: str,
    payload: FeatureRequestUpdate,
    requests: FeatureRequestRepository = Depends(get_feature_request_repository),
) -> dict[str, Any]:
    """Admin status, payment or notes change."""
    changes = payload.changes()
    if not changes:
        raise HTTPException(status_code=400, detail="No changes provided")
    try:
        updated = requests.update(request_id, changes)
    except ServiceError as exc:
        _raise_service_error(exc, "feature_requests.update.failed", request_id=request_id)
    if updated is None:
        raise HTTPException(status_code=404, detail="Feature request not found")

    metrics.increment("feature_requests.updated", tags={"status": updated.status.value})
    logger.info(
        "feature_requests.updated",
        extra={"request_id": request_id, "fields": sorted(changes)},
    )
    return {
        "success": True,
        "message": "Feature request updated",
        "data": updated.model_dump(mode="json"),
    }
