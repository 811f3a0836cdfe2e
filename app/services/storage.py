"""Object storage for awardee avatar images."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from threading import Lock
from typing import Protocol

import httpx

from app.config import settings
from app.observability.metrics import metrics
from app.services.errors import StorageError

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
_SAFE_EXTENSION = re.compile(r"[a-z0-9]{1,5}")


def build_object_key(owner_id: str, filename: str | None, content_type: str) -> str:
    """Return `{owner}-{millis}.{ext}`, preferring the uploaded file's extension."""
    ext = filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else ""
    if not _SAFE_EXTENSION.fullmatch(ext):
        ext = _EXTENSIONS.get(content_type, "bin")
    return f"{owner_id}-{int(time.time() * 1000)}.{ext}"


class AvatarStorage(Protocol):
    """Stores image bytes and returns a publicly resolvable URL."""

    def put(self, key: str, data: bytes, content_type: str) -> str:
        ...


class InMemoryAvatarStorage(AvatarStorage):
    """Keeps uploads in a dict; used for local runs and tests."""

    def __init__(self, base_url: str = "memory://avatars") -> None:
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, tuple[bytes, str]] = {}
        self._lock = Lock()

    def put(self, key: str, data: bytes, content_type: str) -> str:
        with self._lock:
            self.objects[key] = (data, content_type)
        return f"{self.base_url}/{key}"


@dataclass(frozen=True)
class SupabaseBucket:
    base_url: str
    service_key: str
    bucket: str

    def object_url(self, key: str) -> str:
        key = key.lstrip("/")
        return f"{self.base_url.rstrip('/')}/storage/v1/object/{self.bucket}/{key}"

    def public_url(self, key: str) -> str:
        key = key.lstrip("/")
        return f"{self.base_url.rstrip('/')}/storage/v1/object/public/{self.bucket}/{key}"

    def headers(self, content_type: str) -> dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "x-upsert": "true",
            "cache-control": "3600",
            "Content-Type": content_type,
        }


class SupabaseAvatarStorage(AvatarStorage):
    """Uploads avatars through the Supabase Storage REST API."""

    def __init__(
        self,
        target: SupabaseBucket,
        *,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._target = target
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(
            timeout=timeout or settings.collaborator_timeout_seconds
        )

    def close(self) -> None:
        if self._owns_http_client:
            self._http.close()

    def put(self, key: str, data: bytes, content_type: str) -> str:
        try:
            response = self._http.post(
                self._target.object_url(key),
                content=data,
                headers=self._target.headers(content_type),
            )
        except httpx.TimeoutException as exc:
            raise StorageError("Avatar upload timed out.", code="504_STORAGE_TIMEOUT") from exc
        except httpx.HTTPError as exc:
            raise StorageError(f"HTTP error uploading avatar: {exc}", code="502_STORAGE") from exc
        if response.status_code >= 400:
            logger.warning(
                "storage.upload.rejected",
                extra={"key": key, "status": response.status_code, "body": response.text[:200]},
            )
            raise StorageError(
                f"Storage rejected upload: {response.status_code}", code="502_STORAGE"
            )
        metrics.increment("storage.upload.persisted", tags={"backend": "supabase"})
        return self._target.public_url(key)


def build_avatar_storage() -> AvatarStorage:
    """Use Supabase storage when credentials are configured, memory otherwise."""
    if settings.supabase_url and settings.supabase_service_key:
        logger.info("storage.initialized", extra={"backend": "supabase"})
        return SupabaseAvatarStorage(
            SupabaseBucket(
                base_url=settings.supabase_url,
                service_key=settings.supabase_service_key,
                bucket=settings.supabase_avatar_bucket,
            )
        )
    logger.info("storage.initialized", extra={"backend": "memory"})
    return InMemoryAvatarStorage()
