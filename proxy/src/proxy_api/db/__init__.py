"""Database utilities exposed for the proxy service."""

from .base import Base
from .session import (
    DATABASE_URL,
    SessionLocal,
    build_engine,
    build_session_factory,
    engine,
    run_in_session,
)

__all__ = [
    "Base",
    "DATABASE_URL",
    "SessionLocal",
    "build_engine",
    "build_session_factory",
    "engine",
    "run_in_session",
]
