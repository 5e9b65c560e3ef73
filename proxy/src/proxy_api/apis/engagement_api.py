"""Rating, install and review endpoints."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from proxy_api.apis.deps import get_services
from proxy_api.http.deadline import call_service
from proxy_api.models.engagement import InstallRequest, RatingRequest
from proxy_api.models.error import Error
from proxy_api.service.container import ProxyServices

router = APIRouter()

_ERRORS = {
    400: {"model": Error, "description": "Invalid input"},
    404: {"model": Error, "description": "Not found"},
    500: {"model": Error, "description": "Server error"},
}


@router.get(
    "/v0/servers/{server_id:path}/stats",
    responses={200: {"description": "OK"}, **_ERRORS},
    tags=["Engagement"],
    summary="Engagement statistics for a server",
)
async def get_server_stats(
    server_id: str = Path(...),
    services: ProxyServices = Depends(get_services),
) -> dict[str, Any]:
    stats = await call_service(
        services.engagement.get_stats,
        server_id,
        timeout=services.settings.request_timeout_seconds,
    )
    return {"stats": stats.to_dict()}


@router.get(
    "/v0/servers/{server_id:path}/reviews",
    responses={200: {"description": "OK"}, **_ERRORS},
    tags=["Engagement"],
    summary="Paginated reviews for a server",
)
async def list_server_reviews(
    server_id: str = Path(...),
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    sort: Optional[str] = Query(None),
    services: ProxyServices = Depends(get_services),
) -> dict[str, Any]:
    page = await call_service(
        services.engagement.list_reviews,
        server_id,
        limit=limit,
        offset=offset,
        sort=sort,
        timeout=services.settings.request_timeout_seconds,
    )
    return {
        "reviews": [review.to_dict() for review in page.reviews],
        "total_count": page.total_count,
        "has_more": page.has_more,
    }


@router.get(
    "/v0/servers/{server_id:path}/rating/{user_id}",
    responses={200: {"description": "OK"}, **_ERRORS},
    tags=["Engagement"],
    summary="A single user's rating of a server",
)
async def get_user_rating(
    server_id: str = Path(...),
    user_id: str = Path(...),
    services: ProxyServices = Depends(get_services),
) -> dict[str, Any]:
    review = await call_service(
        services.engagement.get_user_rating,
        server_id,
        user_id,
        timeout=services.settings.request_timeout_seconds,
    )
    payload = review.to_dict()
    payload["has_rated"] = True
    return payload


@router.post(
    "/v0/servers/{server_id:path}/rate",
    responses={200: {"description": "OK"}, **_ERRORS},
    tags=["Engagement"],
    summary="Submit or replace a rating",
)
async def rate_server(
    server_id: str = Path(...),
    rating_request: RatingRequest = Body(...),
    services: ProxyServices = Depends(get_services),
) -> dict[str, Any]:
    stats = await call_service(
        services.engagement.submit_rating,
        server_id,
        rating_request.user_id,
        rating_request.rating,
        rating_request.comment,
        timeout=services.settings.request_timeout_seconds,
    )
    return {"success": True, "stats": stats.to_dict()}


@router.post(
    "/v0/servers/{server_id:path}/install",
    responses={200: {"description": "OK"}, **_ERRORS},
    tags=["Engagement"],
    summary="Record an installation",
)
async def install_server(
    server_id: str = Path(...),
    install_request: Optional[InstallRequest] = Body(None),
    services: ProxyServices = Depends(get_services),
) -> dict[str, Any]:
    install_request = install_request or InstallRequest()
    stats = await call_service(
        services.engagement.record_install,
        server_id,
        install_request.user_id,
        source=install_request.source,
        version=install_request.version,
        platform=install_request.platform,
        timeout=services.settings.request_timeout_seconds,
    )
    return {"success": True, "stats": stats.to_dict()}
