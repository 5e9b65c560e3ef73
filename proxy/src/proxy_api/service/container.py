"""Wiring of the proxy services around one engine and one cache."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from proxy_api.config.settings import ProxySettings, get_settings
from proxy_api.db.session import SessionLocal, build_session_factory, engine as default_engine
from proxy_api.query.dialects import SqlDialect, dialect_for
from proxy_api.service.cache import EnrichedServerCache
from proxy_api.service.engagement import EngagementService
from proxy_api.service.servers import ServerQueryService


@dataclass
class ProxyServices:
    settings: ProxySettings
    dialect: SqlDialect
    cache: EnrichedServerCache
    servers: ServerQueryService
    engagement: EngagementService

    def start(self) -> None:
        self.cache.start()

    def stop(self) -> None:
        self.cache.stop()


def build_services(
    *,
    bind: Optional[Engine] = None,
    session_factory: Optional[sessionmaker[Session]] = None,
    settings: Optional[ProxySettings] = None,
    cache: Optional[EnrichedServerCache] = None,
) -> ProxyServices:
    settings = settings or get_settings()
    if bind is None:
        bind = default_engine
        session_factory = session_factory or SessionLocal
    session_factory = session_factory or build_session_factory(bind)
    dialect = dialect_for(bind.dialect.name)
    cache = cache or EnrichedServerCache(
        settings.cache_ttl_seconds,
        settings.cache_cleanup_interval_seconds,
    )
    return ProxyServices(
        settings=settings,
        dialect=dialect,
        cache=cache,
        servers=ServerQueryService(
            dialect=dialect,
            cache=cache,
            session_factory=session_factory,
            settings=settings,
        ),
        engagement=EngagementService(session_factory=session_factory, cache=cache),
    )


__all__ = ["ProxyServices", "build_services"]
