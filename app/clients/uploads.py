"""Client for the avatar upload endpoint."""

from __future__ import annotations

from typing import Any

import httpx

from app.clients.data_api import decode_envelope
from app.clients.errors import CollaboratorError, CollaboratorSchemaError, CollaboratorTimeoutError
from app.config import settings


class UploadClient:
    """Posts avatar images as multipart form data and returns the public URL."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not base_url and http_client is None:
            raise ValueError("DATA_API_BASE_URL is required to create an UploadClient.")
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    @classmethod
    def from_env(cls) -> "UploadClient":
        return cls(settings.data_api_base_url, timeout=settings.collaborator_timeout_seconds)

    def close(self) -> None:
        if self._owns_http_client:
            self._http.close()

    def upload(self, *, filename: str, content: bytes, content_type: str, owner_id: str) -> str:
        """Upload one image for `owner_id`; returns `imageUrl` from the response."""
        files = {"image": (filename, content, content_type)}
        data: dict[str, Any] = {"awardee_id": owner_id}
        try:
            response = self._http.post("/api/awardees/upload-image", files=files, data=data)
        except httpx.TimeoutException as exc:
            raise CollaboratorTimeoutError("Upload request timed out") from exc
        except httpx.HTTPError as exc:
            raise CollaboratorError(f"HTTP error calling upload endpoint: {exc}") from exc

        payload = decode_envelope(response, service="upload")
        image_url = payload.get("imageUrl")
        if not isinstance(image_url, str) or not image_url:
            raise CollaboratorSchemaError("`imageUrl` missing from upload response.")
        return image_url

    def __enter__(self) -> "UploadClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
