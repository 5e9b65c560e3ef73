"""Service answering enriched server queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session, sessionmaker

from proxy_api.config.settings import ProxySettings, get_settings
from proxy_api.db.errors import data_layer_errors
from proxy_api.db.session import run_in_session
from proxy_api.domain.enrichment import EnrichedServer
from proxy_api.domain.validation import validate_document_id
from proxy_api.errors import NotFoundError, ValidationError
from proxy_api.query.dialects import SqlDialect
from proxy_api.query.filters import EMPTY_FILTER, ServerFilter
from proxy_api.query.plan import (
    build_count_plan,
    build_detail_plan,
    build_query_plan,
    build_stats_plan,
    build_trending_plan,
)
from proxy_api.query.sorting import DEFAULT_SORT, normalize_sort_token
from proxy_api.repo.servers import ServerRepository
from proxy_api.service.cache import CachedCollection, EnrichedServerCache

LOGGER = logging.getLogger(__name__)

DEFAULT_TRENDING_LIMIT = 10
MAX_TRENDING_LIMIT = 100


@dataclass(frozen=True)
class QueryResult:
    records: tuple[EnrichedServer, ...]
    total_count: int
    cached_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "servers": [record.to_dict() for record in self.records],
            "total_count": self.total_count,
        }
        if self.cached_at is not None:
            payload["cached_at"] = self.cached_at.isoformat()
        return payload


@dataclass(frozen=True)
class AggregateStats:
    total_servers: int
    servers_with_packages: int
    rated_servers: int
    average_rating: float
    total_reviews: int
    total_installs: int
    new_this_week: int
    updated_this_week: int
    registry_breakdown: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_servers": self.total_servers,
            "servers_with_packages": self.servers_with_packages,
            "rated_servers": self.rated_servers,
            "average_rating": self.average_rating,
            "total_reviews": self.total_reviews,
            "total_installs": self.total_installs,
            "new_this_week": self.new_this_week,
            "updated_this_week": self.updated_this_week,
            "registry_breakdown": dict(self.registry_breakdown),
        }


class ServerQueryService:
    """Paginated, filtered, sorted reads over latest documents.

    Query pushdown answers every request. Unfiltered requests in the default
    order are served from the cached collection when the requested page lies
    inside it.
    """

    def __init__(
        self,
        *,
        dialect: SqlDialect,
        cache: EnrichedServerCache,
        session_factory: Optional[sessionmaker[Session]] = None,
        settings: Optional[ProxySettings] = None,
        repo: Optional[ServerRepository] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._cache = cache
        self._session_factory = session_factory
        self._dialect = dialect
        self._repo = repo or ServerRepository(
            dialect,
            statement_timeout_ms=int(self._settings.request_timeout_seconds * 1000),
        )

    @property
    def cache(self) -> EnrichedServerCache:
        return self._cache

    def normalize_page(self, limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
        if limit is None or limit <= 0:
            limit = self._settings.default_page_size
        limit = min(limit, self._settings.max_page_size)
        offset = offset or 0
        if offset < 0:
            raise ValidationError("offset must not be negative", details={"offset": offset})
        return limit, offset

    def query_enriched(
        self,
        server_filter: Optional[ServerFilter] = None,
        sort_token: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> QueryResult:
        sort_token = normalize_sort_token(sort_token)
        limit, offset = self.normalize_page(limit, offset)
        server_filter = server_filter or EMPTY_FILTER

        if server_filter.is_empty() and sort_token == DEFAULT_SORT:
            cached = self._page_from_collection(limit, offset)
            if cached is not None:
                return cached

        plan = build_query_plan(server_filter, sort_token, limit, offset, dialect=self._dialect)

        def _query(session: Session) -> QueryResult:
            records, total = self._repo.fetch_page(plan, session=session)
            if total is None:
                total = 0
                if offset > 0:
                    total = self._repo.fetch_count(
                        build_count_plan(server_filter, dialect=self._dialect),
                        session=session,
                    )
            return QueryResult(records=tuple(records), total_count=total)

        with data_layer_errors("query_enriched"):
            return run_in_session(_query, session_factory=self._session_factory)

    def refresh(self) -> CachedCollection:
        """Drop the cached collection and load it again from the database."""

        self._cache.clear()
        collection = self._load_collection()
        LOGGER.info("Refreshed enriched server cache with %d servers", len(collection.records))
        return collection

    def get_server(self, name: str) -> EnrichedServer:
        name = validate_document_id(name)
        plan = build_detail_plan(name, dialect=self._dialect)

        with data_layer_errors("get_server"):
            record = run_in_session(
                lambda session: self._repo.fetch_one(plan, session=session),
                session_factory=self._session_factory,
            )
        if record is None:
            raise NotFoundError(f"Server '{name}' not found")
        return record

    def aggregate_stats(self) -> AggregateStats:
        plan = build_stats_plan(dialect=self._dialect)

        with data_layer_errors("aggregate_stats"):
            row = run_in_session(
                lambda session: self._repo.fetch_summary(plan, session=session),
                session_factory=self._session_factory,
            )
        average = row.get("average_rating")
        return AggregateStats(
            total_servers=int(row["total_servers"] or 0),
            servers_with_packages=int(row["servers_with_packages"] or 0),
            rated_servers=int(row["rated_servers"] or 0),
            average_rating=round(float(average), 2) if average is not None else 0.0,
            total_reviews=int(row["total_reviews"] or 0),
            total_installs=int(row["total_installs"] or 0),
            new_this_week=int(row["new_this_week"] or 0),
            updated_this_week=int(row["updated_this_week"] or 0),
            registry_breakdown={
                "npm": int(row["npm_servers"] or 0),
                "pypi": int(row["pypi_servers"] or 0),
                "oci": int(row["oci_servers"] or 0),
                "remote": int(row["remote_servers"] or 0),
            },
        )

    def trending(self, limit: Optional[int] = None) -> list[EnrichedServer]:
        if limit is None or limit <= 0:
            limit = DEFAULT_TRENDING_LIMIT
        plan = build_trending_plan(min(limit, MAX_TRENDING_LIMIT), dialect=self._dialect)

        with data_layer_errors("trending"):
            return run_in_session(
                lambda session: self._repo.fetch_records(plan, session=session),
                session_factory=self._session_factory,
            )

    def _page_from_collection(self, limit: int, offset: int) -> Optional[QueryResult]:
        collection, found = self._cache.get()
        if not found or collection is None:
            collection = self._load_collection()
        loaded = len(collection.records)
        if offset + limit > loaded and collection.total_count > loaded:
            # Page reaches past the loaded collection; let the database answer.
            return None
        return QueryResult(
            records=collection.records[offset : offset + limit],
            total_count=collection.total_count,
            cached_at=self._cache.last_update(),
        )

    def _load_collection(self) -> CachedCollection:
        plan = build_query_plan(
            EMPTY_FILTER,
            DEFAULT_SORT,
            self._settings.collection_size,
            0,
            dialect=self._dialect,
        )

        with data_layer_errors("load_collection"):
            records, total = run_in_session(
                lambda session: self._repo.fetch_page(plan, session=session),
                session_factory=self._session_factory,
            )
        collection = CachedCollection(records=tuple(records), total_count=total or 0)
        self._cache.set(collection)
        return collection


__all__ = ["AggregateStats", "QueryResult", "ServerQueryService"]
