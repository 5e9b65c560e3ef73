"""Enriched server listing, detail, statistics and cache endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query, Response

from proxy_api.apis.deps import get_services, split_csv
from proxy_api.http.deadline import call_service
from proxy_api.models.error import Error
from proxy_api.query.filters import ServerFilter
from proxy_api.query.sorting import DEFAULT_SORT
from proxy_api.service.container import ProxyServices
from proxy_api.service.servers import DEFAULT_TRENDING_LIMIT

router = APIRouter()


@router.get(
    "/v0/enhanced/servers",
    responses={
        200: {"description": "OK"},
        400: {"model": Error, "description": "Invalid filter, sort or pagination"},
        408: {"model": Error, "description": "Query timed out"},
    },
    tags=["Enhanced"],
    summary="List enriched servers",
)
async def list_enhanced_servers(
    response: Response,
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    tags: Optional[str] = Query(None, description="Comma separated tags."),
    min_rating: Optional[float] = Query(None),
    min_installs: Optional[int] = Query(None),
    registry_types: Optional[str] = Query(None, description="Comma separated registry types."),
    transports: Optional[str] = Query(None, description="Comma separated transport types."),
    sort: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    services: ProxyServices = Depends(get_services),
) -> dict[str, Any]:
    def _query():
        server_filter = ServerFilter.build(
            search=search,
            category=category,
            tags=split_csv(tags),
            min_rating=min_rating,
            min_installs=min_installs,
            registry_types=split_csv(registry_types),
            transports=split_csv(transports),
        )
        page_limit, page_offset = services.servers.normalize_page(limit, offset)
        result = services.servers.query_enriched(server_filter, sort, page_limit, page_offset)
        return server_filter, page_limit, page_offset, result

    server_filter, page_limit, page_offset, result = await call_service(
        _query,
        timeout=services.settings.request_timeout_seconds,
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    payload = result.to_dict()
    payload.update(
        {
            "limit": page_limit,
            "offset": page_offset,
            "sort": sort or DEFAULT_SORT,
            "filters": server_filter.model_dump(mode="json", exclude_defaults=True),
        }
    )
    return payload


@router.get(
    "/v0/enhanced/stats/aggregate",
    responses={200: {"description": "OK"}, 500: {"model": Error, "description": "Server error"}},
    tags=["Enhanced"],
    summary="Registry-wide statistics",
)
async def get_aggregate_stats(services: ProxyServices = Depends(get_services)) -> dict[str, Any]:
    stats = await call_service(
        services.servers.aggregate_stats,
        timeout=services.settings.request_timeout_seconds,
    )
    return stats.to_dict()


@router.get(
    "/v0/enhanced/stats/trending",
    responses={200: {"description": "OK"}, 500: {"model": Error, "description": "Server error"}},
    tags=["Enhanced"],
    summary="Recently active servers by trending score",
)
async def get_trending(
    limit: Optional[int] = Query(None),
    services: ProxyServices = Depends(get_services),
) -> dict[str, Any]:
    records = await call_service(
        services.servers.trending,
        limit or DEFAULT_TRENDING_LIMIT,
        timeout=services.settings.request_timeout_seconds,
    )
    return {
        "trending": [record.to_dict() for record in records],
        "period": "30_days",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post(
    "/v0/cache/refresh",
    responses={200: {"description": "OK"}, 500: {"model": Error, "description": "Refresh failed"}},
    tags=["Cache"],
    summary="Clear and reload the enriched server cache",
)
async def refresh_cache(services: ProxyServices = Depends(get_services)) -> dict[str, Any]:
    collection = await call_service(
        services.servers.refresh,
        timeout=services.settings.request_timeout_seconds,
    )
    updated_at = services.cache.last_update()
    return {
        "message": "Cache refreshed successfully",
        "servers": len(collection.records),
        "updated_at": updated_at.isoformat() if updated_at else None,
    }


@router.get(
    "/v0/servers/{server_id:path}",
    responses={
        200: {"description": "OK"},
        400: {"model": Error, "description": "Invalid server id"},
        404: {"model": Error, "description": "Not found"},
    },
    tags=["Servers"],
    summary="Get one enriched server",
)
async def get_server(
    server_id: str = Path(...),
    services: ProxyServices = Depends(get_services),
) -> dict[str, Any]:
    record = await call_service(
        services.servers.get_server,
        server_id,
        timeout=services.settings.request_timeout_seconds,
    )
    return record.to_dict()
