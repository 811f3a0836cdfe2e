"""Shared error classes for repositories and avatar storage."""

from __future__ import annotations


class ServiceError(RuntimeError):
    """Base exception carrying a machine-readable code."""

    def __init__(self, message: str, code: str = "SERVICE_ERROR") -> None:
        super().__init__(message)
        self.code = code


class PersistenceError(ServiceError):
    """Raised when a repository fails to save or retrieve rows."""


class StorageError(ServiceError):
    """Raised when the avatar object store rejects an upload."""
