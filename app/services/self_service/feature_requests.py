"""Optional paid feature request offered after a successful profile save."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock

from app.clients.errors import CollaboratorError
from app.config import settings
from app.models.feature_request import FeatureRequest, FeatureRequestStatus
from app.observability.metrics import metrics
from app.services.self_service.errors import (
    FeatureRequestSubmitError,
    WorkflowStateError,
    WorkflowValidationError,
)
from app.services.self_service.ports import FeatureRequestSink
from app.services.self_service.profile_editor import SavedProfile

logger = logging.getLogger(__name__)


class WantsFeatured(str, Enum):
    NO = "no"
    YES = "yes"


@dataclass
class FeatureRequestDraft:
    wants_featured: WantsFeatured = WantsFeatured.NO
    has_article: bool = False
    article_content: str = ""
    contact_email: str = ""
    whatsapp_number: str = ""


@dataclass(frozen=True)
class FeatureRequestOutcome:
    redirect_url: str
    request: FeatureRequest | None = None

    @property
    def skipped(self) -> bool:
        return self.request is None


@dataclass
class FeatureRequestWorkflow:
    """Steps A (opt in), B (article source) and C (contact), then submit."""

    saved: SavedProfile
    sink: FeatureRequestSink
    amount: int = field(default_factory=lambda: settings.feature_request_amount)
    currency: str = field(default_factory=lambda: settings.feature_request_currency)
    draft: FeatureRequestDraft = field(default_factory=FeatureRequestDraft)
    submitted: list[FeatureRequest] = field(default_factory=list)
    last_error: str | None = None
    _busy: Lock = field(default_factory=Lock, init=False, repr=False)

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def choose(self, wants_featured: WantsFeatured | str) -> FeatureRequestDraft:
        self.draft.wants_featured = WantsFeatured(wants_featured)
        return self.draft

    def choose_article(self, has_article: bool, article_content: str = "") -> FeatureRequestDraft:
        self.draft.has_article = has_article
        self.draft.article_content = article_content
        return self.draft

    def set_contact(self, contact_email: str, whatsapp_number: str) -> FeatureRequestDraft:
        self.draft.contact_email = contact_email
        self.draft.whatsapp_number = whatsapp_number
        return self.draft

    def submit(self) -> FeatureRequestOutcome:
        """Skip on `no`; otherwise validate locally and create one pending request."""
        draft = self.draft
        if draft.wants_featured is WantsFeatured.NO:
            logger.info(
                "self_service.feature_request.skipped",
                extra={"awardee_id": self.saved.awardee_id},
            )
            return FeatureRequestOutcome(redirect_url=self.saved.public_url)

        self._validate(draft)
        if not self._busy.acquire(blocking=False):
            raise WorkflowStateError("A feature request submission is already in progress.")
        try:
            fields = {
                "awardee_id": self.saved.awardee_id,
                "awardee_name": self.saved.awardee_name,
                "has_own_article": draft.has_article,
                "article_content": draft.article_content if draft.has_article else None,
                "needs_article_written": not draft.has_article,
                "contact_email": draft.contact_email.strip(),
                "whatsapp_number": draft.whatsapp_number.strip(),
                "amount": self.amount,
                "currency": self.currency,
                "status": FeatureRequestStatus.PENDING.value,
            }
            try:
                created = self.sink.create_feature_request(fields)
            except CollaboratorError as exc:
                self.last_error = "Failed to submit request"
                logger.error(
                    "self_service.feature_request.failed",
                    extra={
                        "awardee_id": self.saved.awardee_id,
                        "code": exc.code,
                        "error": str(exc),
                    },
                )
                metrics.increment("feature_request.submit.failed")
                raise FeatureRequestSubmitError(str(exc)) from exc
        finally:
            self._busy.release()

        self.last_error = None
        self.submitted.append(created)
        metrics.increment("feature_request.submit.persisted")
        logger.info(
            "self_service.feature_request.submitted",
            extra={
                "awardee_id": self.saved.awardee_id,
                "request_id": created.id,
                "needs_article_written": created.needs_article_written,
            },
        )
        return FeatureRequestOutcome(redirect_url=self.saved.public_url, request=created)

    @staticmethod
    def _validate(draft: FeatureRequestDraft) -> None:
        if not draft.contact_email.strip() or not draft.whatsapp_number.strip():
            raise WorkflowValidationError("Please provide your email and WhatsApp number")
        if draft.has_article and not draft.article_content.strip():
            raise WorkflowValidationError("Please paste your article or choose to have one written")
