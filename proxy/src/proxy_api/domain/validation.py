"""Input checks for engagement submissions and document identifiers."""

from __future__ import annotations

import re
from typing import Any, Optional

from proxy_api.errors import ValidationError

DOCUMENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._/@-]*$")
MAX_DOCUMENT_ID_LENGTH = 255
MAX_USER_ID_LENGTH = 255
MAX_COMMENT_LENGTH = 1000
MAX_SOURCE_LENGTH = 100
MAX_VERSION_LENGTH = 50
MAX_PLATFORM_LENGTH = 50
MIN_RATING = 1
MAX_RATING = 5
ANONYMOUS_USER = "anonymous"


def validate_document_id(document_id: Any) -> str:
    if not isinstance(document_id, str) or not document_id:
        raise ValidationError("Server ID cannot be empty")
    if len(document_id) > MAX_DOCUMENT_ID_LENGTH:
        raise ValidationError("Server ID too long")
    if ".." in document_id or "\\" in document_id or not DOCUMENT_ID_PATTERN.match(document_id):
        raise ValidationError("Invalid server ID format", details={"server_id": document_id})
    return document_id


def validate_user_id(user_id: Any, *, required: bool = True) -> str:
    value = user_id.strip() if isinstance(user_id, str) else ""
    if not value:
        if required:
            raise ValidationError("User ID is required")
        return ANONYMOUS_USER
    if len(value) > MAX_USER_ID_LENGTH:
        raise ValidationError(f"User ID must be at most {MAX_USER_ID_LENGTH} characters")
    return value


def validate_rating(rating: Any) -> int:
    """Ratings are whole numbers in 1..5; out of range values are rejected, not clamped."""

    if isinstance(rating, bool) or not isinstance(rating, (int, float)):
        raise ValidationError("Rating must be a number between 1 and 5")
    if isinstance(rating, float) and not rating.is_integer():
        raise ValidationError("Rating must be a whole number between 1 and 5")
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError("Rating must be between 1 and 5", details={"rating": rating})
    return int(rating)


def validate_optional_text(value: Optional[str], *, field: str, max_length: int) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value or None


__all__ = [
    "ANONYMOUS_USER",
    "MAX_COMMENT_LENGTH",
    "MAX_PLATFORM_LENGTH",
    "MAX_SOURCE_LENGTH",
    "MAX_VERSION_LENGTH",
    "validate_document_id",
    "validate_optional_text",
    "validate_rating",
    "validate_user_id",
]
