"""One awardee's pass through verify -> edit -> optional feature request."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.clients.data_api import DataApiClient
from app.clients.errors import CollaboratorError
from app.clients.uploads import UploadClient
from app.config import settings
from app.services.repositories import AwardeeRepository, FeatureRequestRepository
from app.services.self_service.adapters import (
    HttpFeatureRequestSink,
    HttpImageUploader,
    HttpProfileStore,
    RemoteVerifier,
    RepositoryFeatureRequestSink,
    RepositoryProfileStore,
    StorageImageUploader,
)
from app.services.self_service.errors import SelfServiceError, WorkflowStateError
from app.services.self_service.feature_requests import FeatureRequestWorkflow
from app.services.self_service.ports import FeatureRequestSink, ImageUploader, ProfileStore
from app.services.self_service.profile_editor import ProfileEdits, ProfileEditor
from app.services.self_service.verification import (
    EmailMatchPolicy,
    VerificationGate,
    VerificationResult,
    Verifier,
)
from app.services.storage import AvatarStorage

logger = logging.getLogger(__name__)


@dataclass
class SelfServiceSession:
    editor: ProfileEditor
    sink: FeatureRequestSink
    feature_request: FeatureRequestWorkflow | None = None

    @classmethod
    def start(
        cls,
        awardee_id: str,
        *,
        profiles: ProfileStore,
        verifier: Verifier,
        uploader: ImageUploader,
        sink: FeatureRequestSink,
    ) -> "SelfServiceSession":
        """Load the profile that will be edited; unknown ids are rejected."""
        try:
            profile = profiles.get_profile(awardee_id)
        except CollaboratorError as exc:
            logger.error(
                "self_service.session.load_failed",
                extra={"awardee_id": awardee_id, "code": exc.code, "error": str(exc)},
            )
            raise SelfServiceError(
                str(exc), code="503_PROFILE_UNAVAILABLE", user_message="Failed to load profile"
            ) from exc
        if profile is None:
            raise SelfServiceError(
                "Profile not found", code="404_AWARDEE_NOT_FOUND", user_message="Profile not found"
            )
        editor = ProfileEditor(
            profile=profile, verifier=verifier, profiles=profiles, uploader=uploader
        )
        return cls(editor=editor, sink=sink)

    @classmethod
    def local(
        cls,
        awardee_id: str,
        *,
        awardees: AwardeeRepository,
        requests: FeatureRequestRepository,
        storage: AvatarStorage,
        policy: EmailMatchPolicy | str | None = None,
    ) -> "SelfServiceSession":
        """Run the workflow in-process against the local repositories."""
        store = RepositoryProfileStore(awardees)
        return cls.start(
            awardee_id,
            profiles=store,
            verifier=VerificationGate(store, policy),
            uploader=StorageImageUploader(storage),
            sink=RepositoryFeatureRequestSink(
                requests,
                amount=settings.feature_request_amount,
                currency=settings.feature_request_currency,
            ),
        )

    @classmethod
    def remote(
        cls,
        awardee_id: str,
        *,
        data_api: DataApiClient | None = None,
        uploads: UploadClient | None = None,
    ) -> "SelfServiceSession":
        """Drive a deployed data API over HTTP."""
        data_api = data_api or DataApiClient.from_env()
        uploads = uploads or UploadClient.from_env()
        return cls.start(
            awardee_id,
            profiles=HttpProfileStore(data_api),
            verifier=RemoteVerifier(data_api),
            uploader=HttpImageUploader(uploads),
            sink=HttpFeatureRequestSink(data_api),
        )

    @property
    def masked_email(self) -> str:
        return self.editor.profile.email_hint

    def verify(self, claimed_email: str) -> VerificationResult:
        return self.editor.verify(claimed_email)

    def save_profile(self, edits: ProfileEdits | None = None) -> FeatureRequestWorkflow:
        """Save the profile and open the feature-request step."""
        self.editor.save(edits)
        self.feature_request = FeatureRequestWorkflow(saved=self.editor.handoff(), sink=self.sink)
        return self.feature_request

    def require_feature_request(self) -> FeatureRequestWorkflow:
        if self.feature_request is None:
            raise WorkflowStateError("Save the profile before requesting a feature.")
        return self.feature_request
