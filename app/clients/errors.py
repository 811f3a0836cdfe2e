"""Errors raised by collaborator clients (data API, upload service)."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class CollaboratorError(RuntimeError):
    """Base error for collaborator failures."""

    def __init__(self, message: str, code: str = "COLLABORATOR_ERROR") -> None:
        super().__init__(message)
        self.code = code


class CollaboratorTimeoutError(CollaboratorError):
    """Raised when a collaborator does not answer in time."""

    def __init__(self, message: str = "Collaborator request timed out") -> None:
        super().__init__(message, code="COLLABORATOR_TIMEOUT")


class CollaboratorResponseError(CollaboratorError):
    """Raised on a non-2xx response or a body reporting `success: false`."""

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None):
        super().__init__(message, code=code or f"COLLABORATOR_{status_code or 'FAILED'}")
        self.status_code = status_code


class CollaboratorSchemaError(CollaboratorError):
    """Raised when a collaborator response is not the expected JSON shape."""

    def __init__(self, message: str = "Unexpected collaborator response schema") -> None:
        super().__init__(message, code="COLLABORATOR_SCHEMA_ERR")


def parse_response(model: type[ModelT], data: Any, *, service: str) -> ModelT:
    """Validate a decoded response body, reporting bad shapes as schema errors."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise CollaboratorSchemaError(
            f"{service} returned an invalid {model.__name__} ({exc.error_count()} errors)."
        ) from exc
