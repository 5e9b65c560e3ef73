"""Service layer."""

from .cache import CachedCollection, EnrichedServerCache
from .container import ProxyServices, build_services
from .engagement import EngagementService
from .servers import AggregateStats, QueryResult, ServerQueryService

__all__ = [
    "AggregateStats",
    "CachedCollection",
    "EngagementService",
    "EnrichedServerCache",
    "ProxyServices",
    "QueryResult",
    "ServerQueryService",
    "build_services",
]
