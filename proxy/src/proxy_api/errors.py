"""Domain errors raised by the query, enrichment and engagement layers."""

from __future__ import annotations

from typing import Any, Optional


class ProxyError(Exception):
    """Base error for the proxy core."""

    code = "error"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ProxyError):
    """Bad filter, sort, pagination or submission input."""

    code = "validation_error"


class InvalidSortError(ValidationError):
    """Raised when a sort token is not in the server whitelist."""

    code = "invalid_sort"

    def __init__(self, token: str, valid_tokens: list[str]) -> None:
        super().__init__(
            f"Invalid sort parameter '{token}'. Valid options: {', '.join(valid_tokens)}",
            details={"sort": token, "valid": valid_tokens},
        )
        self.token = token
        self.valid_tokens = valid_tokens


class NotFoundError(ProxyError):
    """No latest document (or review) exists for the given id."""

    code = "not_found"


class DecodeError(ProxyError):
    """A stored document value could not be parsed."""

    code = "decode_error"

    def __init__(self, document_id: str, reason: str) -> None:
        super().__init__(f"Failed to decode document '{document_id}': {reason}")
        self.document_id = document_id
        self.reason = reason


class DataLayerError(ProxyError):
    """Database unavailable, statement failure or rolled back transaction."""

    code = "data_layer_error"


class QueryTimeoutError(DataLayerError):
    """The request deadline elapsed before the query finished."""

    code = "timeout"


class ConflictError(ProxyError):
    """Concurrent modification detected; engagement upserts recompute from source and do not raise it."""

    code = "conflict"


__all__ = [
    "ConflictError",
    "DataLayerError",
    "DecodeError",
    "InvalidSortError",
    "NotFoundError",
    "ProxyError",
    "QueryTimeoutError",
    "ValidationError",
]
