"""Error classes for the self-service edit workflow."""

from __future__ import annotations


class SelfServiceError(RuntimeError):
    """Base exception raised by the self-service workflow."""

    def __init__(
        self,
        message: str,
        code: str = "SELF_SERVICE_ERROR",
        *,
        user_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.user_message = user_message or message


class WorkflowValidationError(SelfServiceError):
    """Raised for input rejected before any collaborator is called."""

    def __init__(self, message: str, code: str = "422_VALIDATION") -> None:
        super().__init__(message, code=code)


class WorkflowStateError(SelfServiceError):
    """Raised when an action is attempted from the wrong workflow state."""

    def __init__(self, message: str, code: str = "409_INVALID_STATE") -> None:
        super().__init__(message, code=code)


class ProfileSaveError(SelfServiceError):
    """Raised when the profile collaborator rejects a save."""

    def __init__(self, message: str, code: str = "502_PROFILE_SAVE") -> None:
        super().__init__(message, code=code, user_message="Failed to update profile. Please try again.")


class FeatureRequestSubmitError(SelfServiceError):
    """Raised when the feature request could not be persisted."""

    def __init__(self, message: str, code: str = "502_FEATURE_REQUEST") -> None:
        super().__init__(
            message, code=code, user_message="Failed to submit request. Please try again."
        )
