"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from proxy_api.service.container import ProxyServices


def get_services(request: Request) -> ProxyServices:
    return request.app.state.services


def split_csv(value: Optional[str]) -> list[str]:
    """Split a comma separated query parameter into trimmed, non-empty items."""

    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


__all__ = ["get_services", "split_csv"]
