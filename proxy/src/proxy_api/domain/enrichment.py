"""Row mapper turning joined document rows into enriched server records."""

from __future__ import annotations

import copy
import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from proxy_api.errors import DecodeError

OFFICIAL_PACKAGE_PREFIX = "@modelcontextprotocol/"
NEW_SERVER_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class Badge:
    type: str
    label: str
    icon: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "label": self.label, "icon": self.icon}


TOP_RATED = Badge("top_rated", "Top Rated", "⭐")
POPULAR = Badge("popular", "Popular", "\U0001f525")
WELL_REVIEWED = Badge("well_reviewed", "Well Reviewed", "\U0001f4ac")
OFFICIAL = Badge("official", "Official", "✓")
NEW = Badge("new", "New", "\U0001f195")


@dataclass(frozen=True)
class EnrichedServer:
    """Latest document of a server joined with its engagement aggregate."""

    name: str
    document: Mapping[str, Any]
    published_at: datetime
    updated_at: datetime
    rating: float
    rating_count: int
    installation_count: int
    quality_score: float
    badges: tuple[Badge, ...] = ()
    trending_score: Optional[float] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        payload = copy.deepcopy(dict(self.document))
        payload.update(
            {
                "id": self.name,
                "name": self.name,
                "published_at": self.published_at.isoformat(),
                "updated_at": self.updated_at.isoformat(),
                "rating": self.rating,
                "rating_count": self.rating_count,
                "installation_count": self.installation_count,
                "stats": {
                    "rating": self.rating,
                    "rating_count": self.rating_count,
                    "install_count": self.installation_count,
                },
                "quality_score": self.quality_score,
                "badges": [badge.to_dict() for badge in self.badges],
            }
        )
        if self.trending_score is not None:
            payload["trending_score"] = self.trending_score
        return payload


def quality_score(rating: float, rating_count: int, installation_count: int) -> float:
    """Blend rating, review volume and install volume into a 0..100 score."""

    rating_part = min(rating * 8, 40.0)
    review_part = min(math.log10(rating_count + 1) * 10, 30.0)
    install_part = min(math.log10(installation_count + 1) * 10, 30.0)
    return round(rating_part + review_part + install_part, 1)


def _has_official_package(document: Mapping[str, Any]) -> bool:
    packages = document.get("packages")
    if not isinstance(packages, list):
        return False
    for package in packages:
        if not isinstance(package, dict):
            continue
        identifier = package.get("identifier")
        if isinstance(identifier, str) and identifier.startswith(OFFICIAL_PACKAGE_PREFIX):
            return True
    return False


def compute_badges(
    document: Mapping[str, Any],
    *,
    rating: float,
    rating_count: int,
    installation_count: int,
    published_at: datetime,
    now: Optional[datetime] = None,
) -> tuple[Badge, ...]:
    badges: list[Badge] = []
    if rating >= 4.5 and rating_count >= 10:
        badges.append(TOP_RATED)
    if installation_count >= 100:
        badges.append(POPULAR)
    if rating_count >= 50:
        badges.append(WELL_REVIEWED)
    if _has_official_package(document):
        badges.append(OFFICIAL)
    current = now or datetime.now(timezone.utc)
    if current - published_at < NEW_SERVER_WINDOW:
        badges.append(NEW)
    return tuple(badges)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def decode_document(name: str, raw: Any) -> dict[str, Any]:
    """Parse a stored document value; anything but a JSON object is a hard error."""

    if isinstance(raw, (bytes, bytearray, memoryview)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(name, str(exc)) from exc
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise DecodeError(name, str(exc)) from exc
    if not isinstance(raw, dict):
        raise DecodeError(name, f"expected a JSON object, got {type(raw).__name__}")
    return raw


def enrich_row(row: Mapping[str, Any], *, now: Optional[datetime] = None) -> EnrichedServer:
    """Map one joined row (``server_name``, ``value``, timestamps, aggregates)."""

    name = str(row["server_name"])
    document = decode_document(name, row["value"])
    published_at = as_utc(row["published_at"])
    updated_at = as_utc(row["updated_at"])
    rating = float(row["rating"] or 0)
    rating_count = int(row["rating_count"] or 0)
    installation_count = int(row["installation_count"] or 0)
    trending = row.get("trending_score")

    return EnrichedServer(
        name=name,
        document=document,
        published_at=published_at,
        updated_at=updated_at,
        rating=rating,
        rating_count=rating_count,
        installation_count=installation_count,
        quality_score=quality_score(rating, rating_count, installation_count),
        badges=compute_badges(
            document,
            rating=rating,
            rating_count=rating_count,
            installation_count=installation_count,
            published_at=published_at,
            now=now,
        ),
        trending_score=round(float(trending), 2) if trending is not None else None,
    )


__all__ = [
    "Badge",
    "EnrichedServer",
    "as_utc",
    "compute_badges",
    "decode_document",
    "enrich_row",
    "quality_score",
]
