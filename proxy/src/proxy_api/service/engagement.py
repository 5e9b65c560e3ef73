"""Service layer for ratings, installs and their aggregates."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from proxy_api.db.errors import data_layer_errors
from proxy_api.db.session import run_in_session
from proxy_api.domain.engagement import EngagementStats, Review, ReviewPage
from proxy_api.domain.enrichment import as_utc
from proxy_api.domain.validation import (
    MAX_COMMENT_LENGTH,
    MAX_PLATFORM_LENGTH,
    MAX_SOURCE_LENGTH,
    MAX_VERSION_LENGTH,
    validate_document_id,
    validate_optional_text,
    validate_rating,
    validate_user_id,
)
from proxy_api.errors import NotFoundError, ValidationError
from proxy_api.repo.engagement import REVIEW_ORDERINGS, EngagementRepository
from proxy_api.service.cache import EnrichedServerCache

LOGGER = logging.getLogger(__name__)

DEFAULT_REVIEW_SORT = "newest"
DEFAULT_REVIEW_PAGE_SIZE = 20
MAX_REVIEW_PAGE_SIZE = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EngagementService:
    """Records engagement events and keeps the per-document aggregate in step.

    Every mutation upserts the event row, recomputes the aggregate from all
    event rows of the document and writes it back inside one transaction.
    The cache is cleared only after that transaction commits.
    """

    def __init__(
        self,
        *,
        session_factory: Optional[sessionmaker[Session]] = None,
        cache: Optional[EnrichedServerCache] = None,
        repo: Optional[EngagementRepository] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache
        self._repo = repo or EngagementRepository()
        self._clock = clock

    def submit_rating(
        self,
        document_id: str,
        user_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> EngagementStats:
        document_id = validate_document_id(document_id)
        user_id = validate_user_id(user_id)
        rating = validate_rating(rating)
        comment = validate_optional_text(comment, field="comment", max_length=MAX_COMMENT_LENGTH)

        def _submit(session: Session) -> EngagementStats:
            now = self._clock()
            self._require_document(document_id, session)
            self._repo.lock_aggregate(document_id, now=now, session=session)
            self._repo.upsert_rating(
                document_id=document_id,
                user_id=user_id,
                rating=rating,
                comment=comment,
                now=now,
                session=session,
            )
            self._repo.recompute_ratings(document_id, now=now, session=session)
            return self._stats(document_id, session)

        with data_layer_errors("submit_rating"):
            stats = run_in_session(_submit, session_factory=self._session_factory)
        self._invalidate("rating", document_id)
        return stats

    def record_install(
        self,
        document_id: str,
        user_id: Optional[str] = None,
        *,
        source: Optional[str] = None,
        version: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> EngagementStats:
        document_id = validate_document_id(document_id)
        user_id = validate_user_id(user_id, required=False)
        source = validate_optional_text(source, field="source", max_length=MAX_SOURCE_LENGTH)
        version = validate_optional_text(version, field="version", max_length=MAX_VERSION_LENGTH)
        platform = validate_optional_text(platform, field="platform", max_length=MAX_PLATFORM_LENGTH)

        def _record(session: Session) -> EngagementStats:
            now = self._clock()
            self._require_document(document_id, session)
            self._repo.lock_aggregate(document_id, now=now, session=session)
            self._repo.upsert_install(
                document_id=document_id,
                user_id=user_id,
                source=source,
                version=version,
                platform=platform,
                now=now,
                session=session,
            )
            self._repo.recompute_installs(document_id, now=now, session=session)
            return self._stats(document_id, session)

        with data_layer_errors("record_install"):
            stats = run_in_session(_record, session_factory=self._session_factory)
        self._invalidate("install", document_id)
        return stats

    def get_stats(self, document_id: str) -> EngagementStats:
        document_id = validate_document_id(document_id)

        with data_layer_errors("get_stats"):
            return run_in_session(
                lambda session: self._stats(document_id, session),
                session_factory=self._session_factory,
            )

    def list_reviews(
        self,
        document_id: str,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
        sort: Optional[str] = None,
    ) -> ReviewPage:
        document_id = validate_document_id(document_id)
        sort = sort or DEFAULT_REVIEW_SORT
        if sort not in REVIEW_ORDERINGS:
            raise ValidationError(
                f"Invalid sort parameter '{sort}'. Valid options: {', '.join(REVIEW_ORDERINGS)}",
                details={"sort": sort, "valid": list(REVIEW_ORDERINGS)},
            )
        if offset < 0:
            raise ValidationError("offset must not be negative")
        if limit is None or limit <= 0:
            limit = DEFAULT_REVIEW_PAGE_SIZE
        limit = min(limit, MAX_REVIEW_PAGE_SIZE)

        def _list(session: Session) -> ReviewPage:
            records, total = self._repo.list_reviews(
                document_id,
                limit=limit,
                offset=offset,
                sort=sort,
                session=session,
            )
            reviews = tuple(_record_to_review(record) for record in records)
            return ReviewPage(
                reviews=reviews,
                total_count=total,
                has_more=offset + len(reviews) < total,
            )

        with data_layer_errors("list_reviews"):
            return run_in_session(_list, session_factory=self._session_factory)

    def get_user_rating(self, document_id: str, user_id: str) -> Review:
        document_id = validate_document_id(document_id)
        user_id = validate_user_id(user_id)

        def _get(session: Session) -> Optional[Review]:
            record = self._repo.get_rating(document_id, user_id, session=session)
            return _record_to_review(record) if record is not None else None

        with data_layer_errors("get_user_rating"):
            review = run_in_session(_get, session_factory=self._session_factory)
        if review is None:
            raise NotFoundError(f"User '{user_id}' has not rated '{document_id}'")
        return review

    def _require_document(self, document_id: str, session: Session) -> None:
        if not self._repo.latest_document_exists(document_id, session=session):
            raise NotFoundError(f"Server '{document_id}' not found")

    def _stats(self, document_id: str, session: Session) -> EngagementStats:
        record = self._repo.get_aggregate(document_id, session=session)
        if record is None:
            return EngagementStats(document_id=document_id)
        return EngagementStats(
            document_id=document_id,
            rating=float(record.rating or 0),
            rating_count=int(record.rating_count or 0),
            installation_count=int(record.installation_count or 0),
        )

    def _invalidate(self, kind: str, document_id: str) -> None:
        if self._cache is None:
            return
        self._cache.clear()
        LOGGER.info("Cache cleared after %s for server %s", kind, document_id)


def _record_to_review(record) -> Review:
    return Review(
        document_id=record.document_id,
        user_id=record.user_id,
        rating=int(record.rating),
        comment=record.comment,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


__all__ = ["EngagementService"]
