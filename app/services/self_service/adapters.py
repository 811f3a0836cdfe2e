"""Collaborator implementations for the self-service workflow.

`Repository*` adapters run the workflow in-process against the local
repositories; `Http*` adapters drive a deployed data API over HTTP.
"""

from __future__ import annotations

import logging
from typing import Any

from app.clients.data_api import DataApiClient
from app.clients.errors import CollaboratorError, parse_response
from app.clients.uploads import UploadClient
from app.models.awardee import SELF_SERVICE_FIELDS, AwardeeProfile
from app.models.feature_request import FeatureRequest, FeatureRequestCreate
from app.services.errors import ServiceError
from app.services.repositories import AwardeeRepository, FeatureRequestRepository
from app.services.self_service.ports import (
    FeatureRequestSink,
    IdentityLookup,
    ImageFile,
    ImageUploader,
    ProfileStore,
)
from app.services.self_service.verification import (
    INVALID_EMAIL_MESSAGE,
    VerificationResult,
    Verifier,
    looks_like_email,
)
from app.services.storage import AvatarStorage, build_object_key

logger = logging.getLogger(__name__)


def _as_collaborator_error(exc: ServiceError) -> CollaboratorError:
    return CollaboratorError(str(exc), code=exc.code)


class RepositoryProfileStore(ProfileStore, IdentityLookup):
    def __init__(self, awardees: AwardeeRepository) -> None:
        self._awardees = awardees

    def lookup_email(self, profile_id: str) -> str | None:
        profile = self.get_profile(profile_id)
        return profile.email if profile else None

    def get_profile(self, profile_id: str) -> AwardeeProfile | None:
        try:
            return self._awardees.get(profile_id)
        except ServiceError as exc:
            raise _as_collaborator_error(exc) from exc

    def update_profile(self, profile_id: str, fields: dict[str, Any]) -> AwardeeProfile:
        changes = {key: value for key, value in fields.items() if key in SELF_SERVICE_FIELDS}
        try:
            updated = self._awardees.update(profile_id, changes)
        except ServiceError as exc:
            raise _as_collaborator_error(exc) from exc
        if updated is None:
            raise CollaboratorError("Awardee not found", code="404_AWARDEE_NOT_FOUND")
        return updated


class StorageImageUploader(ImageUploader):
    def __init__(self, storage: AvatarStorage) -> None:
        self._storage = storage

    def upload(self, image: ImageFile, owner_id: str) -> str:
        key = build_object_key(owner_id, image.filename, image.content_type)
        try:
            return self._storage.put(key, image.content, image.content_type)
        except ServiceError as exc:
            raise _as_collaborator_error(exc) from exc


class RepositoryFeatureRequestSink(FeatureRequestSink):
    def __init__(
        self, requests: FeatureRequestRepository, *, amount: int, currency: str
    ) -> None:
        self._requests = requests
        self._amount = amount
        self._currency = currency

    def create_feature_request(self, fields: dict[str, Any]) -> FeatureRequest:
        payload = FeatureRequestCreate.model_validate(fields)
        request = FeatureRequest.from_create(payload, amount=self._amount, currency=self._currency)
        try:
            return self._requests.create(request)
        except ServiceError as exc:
            raise _as_collaborator_error(exc) from exc


class HttpProfileStore(ProfileStore):
    def __init__(self, client: DataApiClient) -> None:
        self._client = client

    def get_profile(self, profile_id: str) -> AwardeeProfile | None:
        data = self._client.get_profile(profile_id)
        if data is None:
            return None
        return parse_response(AwardeeProfile, data, service="data API")

    def update_profile(self, profile_id: str, fields: dict[str, Any]) -> AwardeeProfile:
        data = self._client.update_profile(profile_id, fields)
        return parse_response(AwardeeProfile, data, service="data API")


class HttpImageUploader(ImageUploader):
    def __init__(self, client: UploadClient) -> None:
        self._client = client

    def upload(self, image: ImageFile, owner_id: str) -> str:
        return self._client.upload(
            filename=image.filename,
            content=image.content,
            content_type=image.content_type,
            owner_id=owner_id,
        )


class HttpFeatureRequestSink(FeatureRequestSink):
    def __init__(self, client: DataApiClient) -> None:
        self._client = client

    def create_feature_request(self, fields: dict[str, Any]) -> FeatureRequest:
        data = self._client.create_feature_request(fields)
        return parse_response(FeatureRequest, data, service="data API")


class RemoteVerifier(Verifier):
    """Delegates the email match to the data API's verify endpoint."""

    def __init__(self, client: DataApiClient) -> None:
        self._client = client

    def verify(self, profile_id: str, claimed_email: str) -> VerificationResult:
        if not looks_like_email(claimed_email):
            return VerificationResult.mismatch(INVALID_EMAIL_MESSAGE)
        try:
            verified, message = self._client.verify_email(profile_id, claimed_email)
        except CollaboratorError as exc:
            logger.error(
                "self_service.verify.unavailable",
                extra={"profile_id": profile_id, "code": exc.code, "error": str(exc)},
            )
            return VerificationResult.unavailable()
        if verified:
            return VerificationResult.ok()
        return VerificationResult.mismatch(message) if message else VerificationResult.mismatch()
