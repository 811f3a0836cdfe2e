"""Recording fakes for the self-service collaborator seams."""

from __future__ import annotations

from typing import Any

from app.clients.errors import CollaboratorError
from app.models.awardee import AwardeeProfile
from app.models.feature_request import FeatureRequest, FeatureRequestCreate
from app.services.self_service.ports import ImageFile
from app.services.self_service.verification import VerificationResult


def make_profile(**overrides: Any) -> AwardeeProfile:
    values: dict[str, Any] = {
        "id": "awd-ada",
        "slug": "ada-obi",
        "name": "Ada Obi",
        "email": "Ada.Obi@Example.com",
        "headline": "Founder, Kora Labs",
        "avatar_url": "https://cdn.example.com/old.png",
        "image_url": "https://cdn.example.com/old.png",
        "social_links": {"linkedin": "https://linkedin.com/in/adaobi"},
    }
    values.update(overrides)
    return AwardeeProfile(**values)


def make_image(size: int = 1024, content_type: str = "image/png") -> ImageFile:
    return ImageFile(filename="avatar.png", content=b"x" * size, content_type=content_type)


class FakeProfileStore:
    def __init__(self, profile: AwardeeProfile | None = None, *, fail_updates: int = 0) -> None:
        self.profile = profile
        self.fail_updates = fail_updates
        self.fail_reads = False
        self.update_calls: list[dict[str, Any]] = []

    def lookup_email(self, profile_id: str) -> str | None:
        profile = self.get_profile(profile_id)
        return profile.email if profile else None

    def get_profile(self, profile_id: str) -> AwardeeProfile | None:
        if self.fail_reads:
            raise CollaboratorError("data API unreachable")
        if self.profile is None or self.profile.id != profile_id:
            return None
        return self.profile

    def update_profile(self, profile_id: str, fields: dict[str, Any]) -> AwardeeProfile:
        self.update_calls.append(dict(fields))
        if self.fail_updates:
            self.fail_updates -= 1
            raise CollaboratorError("profile write rejected", code="COLLABORATOR_500")
        self.profile = self.profile.model_copy(update=fields)
        return self.profile


class FakeUploader:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[ImageFile, str]] = []

    def upload(self, image: ImageFile, owner_id: str) -> str:
        self.calls.append((image, owner_id))
        if self.fail:
            raise CollaboratorError("upload rejected")
        return f"https://cdn.example.com/{owner_id}-{len(self.calls)}.png"


class FakeSink:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict[str, Any]] = []

    def create_feature_request(self, fields: dict[str, Any]) -> FeatureRequest:
        self.calls.append(dict(fields))
        if self.fail:
            raise CollaboratorError("insert failed")
        payload = FeatureRequestCreate.model_validate(fields)
        return FeatureRequest.from_create(payload, amount=fields["amount"], currency=fields["currency"])


class StaticVerifier:
    def __init__(self, result: VerificationResult) -> None:
        self.result = result
        self.calls: list[tuple[str, str]] = []

    def verify(self, profile_id: str, claimed_email: str) -> VerificationResult:
        self.calls.append((profile_id, claimed_email))
        return self.result
