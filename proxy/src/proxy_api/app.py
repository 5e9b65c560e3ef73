"""FastAPI application for the registry enrichment proxy."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from proxy_api.apis import engagement_api, servers_api, system_api
from proxy_api.config.settings import get_settings
from proxy_api.db.migrations import upgrade_database
from proxy_api.db.seed_data import seed_sample_documents
from proxy_api.service.container import ProxyServices, build_services

LOGGER = logging.getLogger(__name__)


def create_app(services: Optional[ProxyServices] = None) -> FastAPI:
    settings = services.settings if services is not None else get_settings()
    app = FastAPI(title="Registry Proxy API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        expose_headers=["X-Total-Count"],
    )

    app.include_router(system_api.router)
    # Sub-resource routes must be registered before the catch-all server detail route.
    app.include_router(engagement_api.router)
    app.include_router(servers_api.router)

    if services is not None:
        app.state.services = services

    @app.on_event("startup")
    def _startup() -> None:
        if getattr(app.state, "services", None) is None:
            upgrade_database()
            if settings.seed_sample_data:
                seed_sample_documents()
            app.state.services = build_services(settings=settings)
        app.state.services.start()
        LOGGER.info("Registry proxy started (dialect=%s)", app.state.services.dialect.name)

    @app.on_event("shutdown")
    def _shutdown() -> None:
        current = getattr(app.state, "services", None)
        if current is not None:
            current.stop()

    return app


app = create_app()
