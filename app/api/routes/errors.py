"""Map service error codes onto HTTP status codes."""

from __future__ import annotations

from fastapi import status


def map_error_code(code: str) -> int:
    if code.startswith("404"):
        return status.HTTP_404_NOT_FOUND
    if code.startswith("409"):
        return status.HTTP_409_CONFLICT
    if code.startswith("413"):
        return status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    if code.startswith("415"):
        return status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    if code.startswith("422"):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if code.startswith("502"):
        return status.HTTP_502_BAD_GATEWAY
    if code.startswith("503") or code.startswith("504"):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR
