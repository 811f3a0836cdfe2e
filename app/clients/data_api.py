"""Client for the awardee data API (profiles, verification, feature requests)."""

from __future__ import annotations

from typing import Any

import httpx

from app.clients.errors import (
    CollaboratorError,
    CollaboratorResponseError,
    CollaboratorSchemaError,
    CollaboratorTimeoutError,
)
from app.config import settings


def decode_envelope(response: httpx.Response, *, service: str) -> dict[str, Any]:
    """Return the JSON body, treating non-2xx and `success: false` alike as failures."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not response.is_success:
        detail = None
        if isinstance(payload, dict):
            detail = payload.get("message") or payload.get("error") or payload.get("detail")
        message = f"{service} request failed: {response.status_code}"
        if detail:
            message = f"{message} - {detail}"
        raise CollaboratorResponseError(message, status_code=response.status_code)

    if not isinstance(payload, dict):
        raise CollaboratorSchemaError(f"{service} response is not a JSON object.")

    ok = payload.get("success", payload.get("ok", True))
    if ok is False:
        detail = payload.get("message") or payload.get("error") or "unknown error"
        raise CollaboratorResponseError(
            f"{service} reported failure - {detail}", status_code=response.status_code
        )
    return payload


class DataApiClient:
    """Minimal client for the profile and feature-request endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        admin_key: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not base_url and http_client is None:
            raise ValueError("DATA_API_BASE_URL is required to create a DataApiClient.")
        self._admin_key = admin_key
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    @classmethod
    def from_env(cls) -> "DataApiClient":
        """Instantiate the client using DATA_API_BASE_URL / ADMIN_API_KEY."""
        return cls(
            settings.data_api_base_url,
            admin_key=settings.admin_api_key,
            timeout=settings.collaborator_timeout_seconds,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_http_client:
            self._http.close()

    def get_profile(self, awardee_id: str) -> dict[str, Any] | None:
        """Fetch a profile; returns None on 404."""
        response = self._request("GET", f"/api/awardees/{awardee_id}")
        if response.status_code == 404:
            return None
        payload = decode_envelope(response, service="data-api")
        return self._require_object(payload, "awardee")

    def verify_email(self, awardee_id: str, email: str) -> tuple[bool, str | None]:
        """Return (verified, message); a 403 is a legitimate mismatch, not an error."""
        response = self._request(
            "POST",
            "/api/awardees/verify-email",
            json={"awardeeId": awardee_id, "email": email},
        )
        if response.status_code == 403:
            try:
                message = response.json().get("message")
            except ValueError:
                message = None
            return False, message
        payload = decode_envelope(response, service="data-api")
        return bool(payload.get("verified")), payload.get("message")

    def update_profile(self, awardee_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        response = self._request(
            "PUT", "/api/awardees/self-update", json={"id": awardee_id, **fields}
        )
        payload = decode_envelope(response, service="data-api")
        return self._require_object(payload, "awardee")

    def create_feature_request(self, fields: dict[str, Any]) -> dict[str, Any]:
        response = self._request("POST", "/api/feature-requests", json=fields)
        payload = decode_envelope(response, service="data-api")
        return self._require_object(payload, "data")

    def list_feature_requests(self, *, status: str | None = None) -> list[dict[str, Any]]:
        params = {"status": status} if status else None
        response = self._request(
            "GET", "/api/feature-requests", params=params, headers=self._admin_headers()
        )
        payload = decode_envelope(response, service="data-api")
        data = payload.get("data")
        if not isinstance(data, list) or not all(isinstance(entry, dict) for entry in data):
            raise CollaboratorSchemaError("`data` must be a list of JSON objects.")
        return data

    def update_feature_request(self, request_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        response = self._request(
            "PUT",
            f"/api/feature-requests/{request_id}",
            json=fields,
            headers=self._admin_headers(),
        )
        payload = decode_envelope(response, service="data-api")
        return self._require_object(payload, "data")

    def _admin_headers(self) -> dict[str, str]:
        return {"X-Admin-Key": self._admin_key} if self._admin_key else {}

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise CollaboratorTimeoutError() from exc
        except httpx.HTTPError as exc:
            raise CollaboratorError(f"HTTP error calling data API: {exc}") from exc

    @staticmethod
    def _require_object(payload: dict[str, Any], key: str) -> dict[str, Any]:
        value = payload.get(key)
        if not isinstance(value, dict):
            raise CollaboratorSchemaError(f"`{key}` missing from data API response.")
        return value

    def __enter__(self) -> "DataApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
