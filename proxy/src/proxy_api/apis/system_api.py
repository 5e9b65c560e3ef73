"""Liveness endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from proxy_api.apis.deps import get_services
from proxy_api.service.container import ProxyServices

router = APIRouter()


@router.get("/health", tags=["System"], summary="Liveness probe")
async def health(services: ProxyServices = Depends(get_services)) -> dict[str, Any]:
    last_update = services.cache.last_update()
    return {
        "status": "healthy",
        "cache_last_update": last_update.isoformat() if last_update else None,
    }
