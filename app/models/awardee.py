"""Domain models for awardee profiles."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

SELF_SERVICE_SOCIAL_KEYS: tuple[str, ...] = ("linkedin", "twitter", "github", "website")

# Fields an awardee may change through the self-service flow. Visibility,
# featured flags, slug and email stay admin-only.
SELF_SERVICE_FIELDS: frozenset[str] = frozenset(
    {
        "headline",
        "tagline",
        "bio",
        "social_links",
        "linkedin_post_url",
        "avatar_url",
        "image_url",
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


def normalize_social_links(links: Mapping[str, str | None] | None) -> dict[str, str]:
    """Keep the four self-service platforms, dropping blank or unknown entries."""
    source = links or {}
    normalized: dict[str, str] = {}
    for key in SELF_SERVICE_SOCIAL_KEYS:
        value = (source.get(key) or "").strip()
        if value:
            normalized[key] = value
    return normalized


def mask_email(email: str | None) -> str:
    """Hide most of the local part so the address can be hinted at safely."""
    if not email or "@" not in email:
        return "No email on file"
    name, domain = email.split("@", 1)
    if len(name) <= 2:
        return f"{name}@{domain}"
    return f"{name[:2]}{'*' * min(len(name) - 2, 5)}@{domain}"


class AwardeeProfile(BaseModel):
    """Awardee profile as stored by the data API."""

    id: str = Field(default_factory=_new_id)
    slug: str
    name: str
    email: str | None = Field(
        default=None, description="Verification anchor; never changed by self-service."
    )
    headline: str | None = None
    tagline: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    image_url: str | None = None
    social_links: dict[str, str] = Field(default_factory=dict)
    linkedin_post_url: str | None = None
    is_public: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None
    # Set when the profile comes from the edit endpoint, which withholds `email`.
    masked_email: str | None = Field(default=None, exclude=True)

    model_config = {"from_attributes": True}

    @property
    def email_hint(self) -> str:
        if self.email:
            return mask_email(self.email)
        return self.masked_email or mask_email(None)

    @model_validator(mode="after")
    def _default_updated_at(self) -> "AwardeeProfile":
        if self.updated_at is None or self.updated_at < self.created_at:
            self.updated_at = self.created_at
        return self

    def public_view(self) -> dict[str, object]:
        """Serialize without the private contact email."""
        return self.model_dump(mode="json", exclude={"email"})

    def edit_view(self) -> dict[str, object]:
        """Serialize for the edit page: email replaced with a masked hint."""
        payload = self.public_view()
        payload["masked_email"] = self.email_hint
        return payload


class ProfileUpdate(BaseModel):
    """Whitelisted self-service update payload."""

    headline: str | None = None
    tagline: str | None = None
    bio: str | None = None
    social_links: dict[str, str | None] | None = None
    linkedin_post_url: str | None = None
    avatar_url: str | None = None
    image_url: str | None = None

    def changes(self) -> dict[str, object]:
        """Return only the fields the caller actually sent."""
        payload = self.model_dump(exclude_unset=True)
        for key, value in payload.items():
            if isinstance(value, str) and not value.strip():
                payload[key] = None
        if "social_links" in payload:
            payload["social_links"] = normalize_social_links(payload["social_links"])
        return payload
