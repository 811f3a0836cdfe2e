"""SQLModel mappings for awardee profiles and feature requests."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import expression
from sqlmodel import Field, SQLModel

from app.models.awardee import AwardeeProfile
from app.models.feature_request import FeatureRequest


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


JSON_BACKING_TYPE = sa.JSON().with_variant(JSONB(astext_type=sa.Text()), "postgresql")


class UtcNow(expression.FunctionElement):
    """Dialect-aware server default that pins timestamps to UTC."""

    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(UtcNow)
def _utc_now_default(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "CURRENT_TIMESTAMP"


@compiles(UtcNow, "postgresql")
def _utc_now_default_postgres(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "timezone('utc', now())"


class AwardeeRecord(SQLModel, table=True):
    """ORM model for awardee profiles."""

    __tablename__ = "awardees"
    __table_args__ = (sa.UniqueConstraint("slug", name="uq_awardees_slug"),)

    id: str = Field(
        default_factory=_new_id,
        sa_column=Column(String(length=64), primary_key=True, nullable=False),
    )
    slug: str = Field(sa_column=Column(String(length=255), nullable=False))
    name: str = Field(sa_column=Column(String(length=255), nullable=False))
    email: str | None = Field(default=None, sa_column=Column(String(length=320), nullable=True))
    headline: str | None = Field(default=None, sa_column=Column(String(length=512), nullable=True))
    tagline: str | None = Field(default=None, sa_column=Column(String(length=512), nullable=True))
    bio: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    avatar_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    image_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    social_links: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON_BACKING_TYPE, nullable=False),
    )
    linkedin_post_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    is_public: bool = Field(
        default=True, sa_column=Column(Boolean, nullable=False, server_default=sa.true())
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=UtcNow()),
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=UtcNow(),
            onupdate=UtcNow(),
        ),
    )

    @classmethod
    def from_profile(cls, profile: AwardeeProfile) -> AwardeeRecord:
        return cls(**profile.model_dump())

    def to_profile(self) -> AwardeeProfile:
        return AwardeeProfile.model_validate(self)


class FeatureRequestRecord(SQLModel, table=True):
    """ORM model for feature requests."""

    __tablename__ = "feature_requests"
    __table_args__ = (
        sa.Index("ix_feature_requests_awardee_id", "awardee_id"),
        sa.Index("ix_feature_requests_status", "status"),
    )

    id: str = Field(
        default_factory=_new_id,
        sa_column=Column(String(length=64), primary_key=True, nullable=False),
    )
    # No foreign key: a request outlives edits to the awardee row.
    awardee_id: str = Field(sa_column=Column(String(length=64), nullable=False))
    awardee_name: str | None = Field(
        default=None, sa_column=Column(String(length=255), nullable=True)
    )
    has_own_article: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default=sa.false())
    )
    article_content: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    needs_article_written: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default=sa.false())
    )
    contact_email: str = Field(sa_column=Column(String(length=320), nullable=False))
    whatsapp_number: str = Field(sa_column=Column(String(length=64), nullable=False))
    amount: int = Field(sa_column=Column(Integer, nullable=False))
    currency: str = Field(sa_column=Column(String(length=8), nullable=False))
    status: str = Field(sa_column=Column(String(length=32), nullable=False))
    payment_status: str | None = Field(
        default=None, sa_column=Column(String(length=32), nullable=True)
    )
    admin_notes: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=UtcNow()),
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=UtcNow(),
            onupdate=UtcNow(),
        ),
    )

    @classmethod
    def from_feature_request(cls, request: FeatureRequest) -> FeatureRequestRecord:
        payload = request.model_dump(mode="json", exclude={"created_at", "updated_at"})
        return cls(
            **payload,
            created_at=request.created_at,
            updated_at=request.updated_at or request.created_at,
        )

    def to_feature_request(self) -> FeatureRequest:
        return FeatureRequest.model_validate(self)
