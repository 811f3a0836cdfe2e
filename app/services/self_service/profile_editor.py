"""Controller for the awardee's self-service profile form.

States run `UNVERIFIED -> EDITING -> SUBMITTING -> SAVED`. A save uploads the
optional new avatar first and only then writes the profile; the two calls are
sequential, not transactional. When the upload succeeds but the profile write
fails, the uploaded URL is kept as `pending_avatar_url` and reused by the next
save attempt instead of uploading again.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from threading import Lock
from typing import Any

from app.clients.errors import CollaboratorError
from app.config import settings
from app.models.awardee import AwardeeProfile, normalize_social_links
from app.observability.metrics import metrics
from app.services.self_service.errors import (
    ProfileSaveError,
    WorkflowStateError,
    WorkflowValidationError,
)
from app.services.self_service.ports import ImageFile, ImageUploader, ProfileStore
from app.services.self_service.verification import VerificationResult, Verifier

logger = logging.getLogger(__name__)


class EditorState(str, Enum):
    UNVERIFIED = "unverified"
    EDITING = "editing"
    SUBMITTING = "submitting"
    SAVED = "saved"


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass
class ProfileEdits:
    """Form values; every field is optional and blank means absent."""

    headline: str | None = None
    tagline: str | None = None
    bio: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    github: str | None = None
    website: str | None = None
    linkedin_post_url: str | None = None

    @classmethod
    def from_profile(cls, profile: AwardeeProfile) -> "ProfileEdits":
        links = profile.social_links or {}
        return cls(
            headline=profile.headline,
            tagline=profile.tagline,
            bio=profile.bio,
            linkedin=links.get("linkedin"),
            twitter=links.get("twitter"),
            github=links.get("github"),
            website=links.get("website"),
            linkedin_post_url=profile.linkedin_post_url,
        )

    def to_fields(self, avatar_url: str | None) -> dict[str, Any]:
        """Build the persistence payload."""
        return {
            "headline": _blank_to_none(self.headline),
            "tagline": _blank_to_none(self.tagline),
            "bio": _blank_to_none(self.bio),
            "linkedin_post_url": _blank_to_none(self.linkedin_post_url),
            "social_links": normalize_social_links(
                {
                    "linkedin": self.linkedin,
                    "twitter": self.twitter,
                    "github": self.github,
                    "website": self.website,
                }
            ),
            "avatar_url": avatar_url or None,
            "image_url": avatar_url or None,
        }


@dataclass(frozen=True)
class SavedProfile:
    """Hand-off from a completed profile save to the feature-request step."""

    awardee_id: str
    awardee_name: str
    slug: str
    public_url: str


@dataclass
class ProfileEditor:
    profile: AwardeeProfile
    verifier: Verifier
    profiles: ProfileStore
    uploader: ImageUploader
    max_image_bytes: int = field(default_factory=lambda: settings.avatar_max_bytes)
    allowed_content_types: Iterable[str] = field(
        default_factory=lambda: tuple(settings.avatar_allowed_content_types)
    )
    state: EditorState = EditorState.UNVERIFIED
    edits: ProfileEdits | None = None
    image: ImageFile | None = None
    pending_avatar_url: str | None = None
    last_error: str | None = None
    _busy: Lock = field(default_factory=Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.edits is None:
            self.edits = ProfileEdits.from_profile(self.profile)

    @property
    def verified(self) -> bool:
        return self.state is not EditorState.UNVERIFIED

    @property
    def busy(self) -> bool:
        return self.state is EditorState.SUBMITTING

    def verify(self, claimed_email: str) -> VerificationResult:
        """Run the verification gate; only a VERIFIED result unlocks editing."""
        if self.state is not EditorState.UNVERIFIED:
            raise WorkflowStateError(f"Cannot verify from state '{self.state.value}'.")
        result = self.verifier.verify(self.profile.id, claimed_email)
        if result.verified:
            self.state = EditorState.EDITING
            self.last_error = None
        else:
            self.last_error = result.reason
        return result

    def choose_image(self, image: ImageFile) -> None:
        """Validate size and type locally; nothing is sent until `save`."""
        if self.state in (EditorState.SUBMITTING, EditorState.SAVED):
            raise WorkflowStateError(f"Cannot change image while '{self.state.value}'.")
        if image.size > self.max_image_bytes:
            limit_mb = self.max_image_bytes // (1024 * 1024)
            raise WorkflowValidationError(
                f"Image must be less than {limit_mb}MB", code="413_IMAGE_TOO_LARGE"
            )
        if image.content_type not in tuple(self.allowed_content_types):
            raise WorkflowValidationError(
                "Invalid file type. Please upload JPG, PNG, WebP, or GIF.",
                code="415_IMAGE_TYPE",
            )
        self.image = image
        self.pending_avatar_url = None

    def clear_image(self) -> None:
        self.image = None
        self.pending_avatar_url = None

    def update(self, **values: str | None) -> ProfileEdits:
        """Apply form field changes without saving."""
        known = {f.name for f in fields(ProfileEdits)}
        unknown = set(values) - known
        if unknown:
            raise WorkflowValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        self.edits = replace(self.edits, **values)
        return self.edits

    def save(self, edits: ProfileEdits | None = None) -> AwardeeProfile:
        """Upload the chosen avatar (if any), then persist the profile fields."""
        if self.state is EditorState.UNVERIFIED:
            logger.warning(
                "self_service.profile.save_rejected",
                extra={"profile_id": self.profile.id, "reason": "unverified"},
            )
            raise WorkflowStateError(
                "Please verify your email first", code="403_NOT_VERIFIED"
            )
        if self.state is not EditorState.EDITING or not self._busy.acquire(blocking=False):
            raise WorkflowStateError(f"Cannot save while '{self.state.value}'.")

        try:
            if edits is not None:
                self.edits = edits
            self.state = EditorState.SUBMITTING
            avatar_url = self._resolve_avatar_url()
            payload = self.edits.to_fields(avatar_url)
            try:
                updated = self.profiles.update_profile(self.profile.id, payload)
            except CollaboratorError as exc:
                self.state = EditorState.EDITING
                self.last_error = "Failed to update profile"
                logger.error(
                    "self_service.profile.save_failed",
                    extra={
                        "profile_id": self.profile.id,
                        "code": exc.code,
                        "error": str(exc),
                        "orphaned_avatar": self.pending_avatar_url,
                    },
                )
                metrics.increment("profile.save.failed")
                raise ProfileSaveError(str(exc)) from exc

            self.profile = updated
            self.image = None
            self.pending_avatar_url = None
            self.last_error = None
            self.state = EditorState.SAVED
            metrics.increment("profile.save.persisted")
            logger.info(
                "self_service.profile.saved",
                extra={"profile_id": updated.id, "fields": sorted(payload)},
            )
            return updated
        finally:
            if self.state is EditorState.SUBMITTING:
                self.state = EditorState.EDITING
            self._busy.release()

    def handoff(self) -> SavedProfile:
        """Return the explicit hand-off object for the feature-request step."""
        if self.state is not EditorState.SAVED:
            raise WorkflowStateError("Profile must be saved before the feature request step.")
        return SavedProfile(
            awardee_id=self.profile.id,
            awardee_name=self.profile.name,
            slug=self.profile.slug,
            public_url=settings.public_profile_url(self.profile.slug),
        )

    def _resolve_avatar_url(self) -> str | None:
        if self.pending_avatar_url:
            return self.pending_avatar_url
        if self.image is None:
            return self.profile.avatar_url
        try:
            self.pending_avatar_url = self.uploader.upload(self.image, self.profile.id)
        except CollaboratorError as exc:
            # Upload failure does not block the save; the old avatar is kept.
            logger.warning(
                "self_service.profile.upload_failed",
                extra={"profile_id": self.profile.id, "code": exc.code, "error": str(exc)},
            )
            metrics.increment("profile.upload.failed")
            return self.profile.avatar_url
        metrics.increment("profile.upload.persisted")
        return self.pending_avatar_url
