"""Domain models for paid feature (press placement) requests."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator


class FeatureRequestStatus(str, Enum):
    PENDING = "pending"
    CONTACTED = "contacted"
    PAID = "paid"
    IN_PROGRESS = "in_progress"
    PUBLISHED = "published"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REFUNDED = "refunded"


STATUS_LABELS: dict[FeatureRequestStatus, str] = {
    FeatureRequestStatus.PENDING: "Pending",
    FeatureRequestStatus.CONTACTED: "Contacted",
    FeatureRequestStatus.PAID: "Paid",
    FeatureRequestStatus.IN_PROGRESS: "In Progress",
    FeatureRequestStatus.PUBLISHED: "Published",
    FeatureRequestStatus.CANCELLED: "Cancelled",
}

# Every consumer that dispatches on status keeps a full mapping like this one.
if set(STATUS_LABELS) != set(FeatureRequestStatus):
    raise RuntimeError("STATUS_LABELS must cover every status")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeatureRequestCreate(BaseModel):
    """Payload accepted by the feature-request endpoint."""

    awardee_id: str
    awardee_name: str | None = None
    has_own_article: bool = False
    article_content: str | None = None
    needs_article_written: bool | None = None
    contact_email: str
    whatsapp_number: str
    amount: int | None = None
    currency: str | None = None

    @model_validator(mode="after")
    def _derive_article_flags(self) -> "FeatureRequestCreate":
        if not self.has_own_article:
            self.article_content = None
        elif self.article_content is not None and not self.article_content.strip():
            self.article_content = None
        if self.needs_article_written is None:
            self.needs_article_written = not self.has_own_article
        return self


class FeatureRequest(BaseModel):
    """Persisted feature request."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    awardee_id: str
    awardee_name: str | None = None
    has_own_article: bool = False
    article_content: str | None = None
    needs_article_written: bool = False
    contact_email: str
    whatsapp_number: str
    amount: int
    currency: str
    status: FeatureRequestStatus = FeatureRequestStatus.PENDING
    payment_status: PaymentStatus | None = None
    admin_notes: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_create(
        cls, payload: FeatureRequestCreate, *, amount: int, currency: str
    ) -> "FeatureRequest":
        """Build a fresh pending request; amount and currency fall back to program defaults."""
        return cls(
            awardee_id=payload.awardee_id,
            awardee_name=payload.awardee_name,
            has_own_article=payload.has_own_article,
            article_content=payload.article_content,
            needs_article_written=bool(payload.needs_article_written),
            contact_email=payload.contact_email.strip(),
            whatsapp_number=payload.whatsapp_number.strip(),
            amount=payload.amount or amount,
            currency=payload.currency or currency,
        )


class FeatureRequestUpdate(BaseModel):
    """Admin-side status change."""

    status: FeatureRequestStatus | None = None
    payment_status: PaymentStatus | None = None
    admin_notes: str | None = None

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)
