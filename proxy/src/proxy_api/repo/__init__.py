"""Repositories executing statements against the proxy database."""

from .engagement import EngagementRepository
from .servers import ServerRepository

__all__ = ["EngagementRepository", "ServerRepository"]
