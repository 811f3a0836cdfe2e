"""Collaborator seams used by the self-service workflow.

Implementations raise `app.clients.errors.CollaboratorError` (or a subclass)
for any transport or backend failure; a missing profile is reported as `None`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from app.models.awardee import AwardeeProfile
from app.models.feature_request import FeatureRequest


@dataclass(frozen=True)
class ImageFile:
    """An avatar chosen by the awardee, held in memory until save."""

    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


class IdentityLookup(Protocol):
    def lookup_email(self, profile_id: str) -> str | None:
        """Return the stored contact email, or None when the profile is unknown."""
        ...


class ProfileStore(Protocol):
    def get_profile(self, profile_id: str) -> AwardeeProfile | None:
        ...

    def update_profile(self, profile_id: str, fields: dict[str, Any]) -> AwardeeProfile:
        ...


class ImageUploader(Protocol):
    def upload(self, image: ImageFile, owner_id: str) -> str:
        """Persist the image and return its public URL."""
        ...


class FeatureRequestSink(Protocol):
    def create_feature_request(self, fields: dict[str, Any]) -> FeatureRequest:
        ...
