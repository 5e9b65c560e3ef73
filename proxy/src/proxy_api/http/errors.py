"""Shared error helpers for HTTP APIs."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import HTTPException, status

from proxy_api.errors import (
    ConflictError,
    DataLayerError,
    DecodeError,
    NotFoundError,
    ProxyError,
    QueryTimeoutError,
    ValidationError,
)
from proxy_api.models.error import Error

LOGGER = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Internal server error"

_STATUS_ERROR_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_408_REQUEST_TIMEOUT: "timeout",
    status.HTTP_409_CONFLICT: "conflict",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "internal_error",
}


def error_payload(
    message: str,
    *,
    error: Optional[str] = None,
    status_code: Optional[int] = None,
    details: Optional[dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    resolved_error = error or _STATUS_ERROR_CODES.get(status_code or 0, "error")
    return Error(
        error=resolved_error,
        message=message,
        request_id=request_id,
        details=details,
    ).model_dump(by_alias=True, exclude_none=True)


def http_error(
    status_code: int,
    message: str,
    *,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> HTTPException:
    payload = error_payload(
        message,
        error=error,
        status_code=status_code,
        details=details,
        request_id=request_id,
    )
    return HTTPException(status_code=status_code, detail=payload)


def bad_request(
    message: str,
    *,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> HTTPException:
    return http_error(status.HTTP_400_BAD_REQUEST, message, error=error, details=details)


def not_found(
    message: str,
    *,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> HTTPException:
    return http_error(status.HTTP_404_NOT_FOUND, message, error=error, details=details)


def request_timeout(
    message: str = "Request timed out",
    *,
    error: Optional[str] = None,
) -> HTTPException:
    return http_error(status.HTTP_408_REQUEST_TIMEOUT, message, error=error)


def conflict(
    message: str,
    *,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> HTTPException:
    return http_error(status.HTTP_409_CONFLICT, message, error=error, details=details)


def internal_error(
    message: str = GENERIC_SERVER_ERROR,
    *,
    error: Optional[str] = None,
) -> HTTPException:
    return http_error(status.HTTP_500_INTERNAL_SERVER_ERROR, message, error=error)


def from_domain_error(exc: ProxyError) -> HTTPException:
    """Map a domain error onto its HTTP status; server-side details stay in the log."""

    if isinstance(exc, ValidationError):
        return bad_request(exc.message, error=exc.code, details=exc.details)
    if isinstance(exc, NotFoundError):
        return not_found(exc.message, error=exc.code, details=exc.details)
    if isinstance(exc, QueryTimeoutError):
        return request_timeout(error=exc.code)
    if isinstance(exc, ConflictError):
        return conflict(exc.message, error=exc.code, details=exc.details)
    if isinstance(exc, DecodeError):
        LOGGER.error("Stored document could not be decoded: %s", exc.message)
        return internal_error(error=exc.code)
    if isinstance(exc, DataLayerError):
        return internal_error(error=exc.code)
    LOGGER.error("Unhandled proxy error: %s", exc.message)
    return internal_error()


__all__ = [
    "bad_request",
    "conflict",
    "error_payload",
    "from_domain_error",
    "http_error",
    "internal_error",
    "not_found",
    "request_timeout",
]
