"""Engagement snapshots returned by the engagement service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class EngagementStats:
    document_id: str
    rating: float = 0.0
    rating_count: int = 0
    installation_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "server_id": self.document_id,
            "rating": self.rating,
            "rating_count": self.rating_count,
            "installation_count": self.installation_count,
        }


@dataclass(frozen=True)
class Review:
    document_id: str
    user_id: str
    rating: int
    comment: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def review_id(self) -> str:
        return f"{self.document_id}:{self.user_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.review_id,
            "server_id": self.document_id,
            "user_id": self.user_id,
            "rating": self.rating,
            "comment": self.comment or "",
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class ReviewPage:
    reviews: tuple[Review, ...]
    total_count: int
    has_more: bool


__all__ = ["EngagementStats", "Review", "ReviewPage"]
