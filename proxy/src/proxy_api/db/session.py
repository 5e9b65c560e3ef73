"""Database session and engine helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import Session, sessionmaker

from proxy_api.query.dialects import CASEFOLD_FUNCTION, casefold_text

from .base import Base
from . import models  # noqa: F401  # ensure models are imported for metadata

PROJECT_ROOT = Path(__file__).resolve().parents[4]
DEFAULT_DB_PATH = PROJECT_ROOT / "var" / "data" / "registry_proxy.db"

# PostgreSQL always goes through psycopg 3.
_DRIVER_MAP = {
    "postgresql": "postgresql+psycopg",
    "postgres": "postgresql+psycopg",
    "postgresql+psycopg2": "postgresql+psycopg",
}

T = TypeVar("T")


def normalize_database_url(raw_url: str) -> str:
    url = make_url(raw_url)
    driver = _DRIVER_MAP.get(url.drivername)
    if driver is None:
        return raw_url
    return url.set(drivername=driver).render_as_string(hide_password=False)


def _resolve_database_url() -> str:
    raw_url = os.getenv("REGISTRY_PROXY_DATABASE_URL")
    if not raw_url:
        DEFAULT_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{DEFAULT_DB_PATH.as_posix()}"

    url: URL = make_url(normalize_database_url(raw_url))
    if url.drivername.startswith("sqlite") and url.database and url.database != ":memory:":
        db_path = Path(url.database)
        if not db_path.is_absolute():
            db_path = PROJECT_ROOT / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        url = url.set(database=str(db_path))
    return url.render_as_string(hide_password=False)


DATABASE_URL = _resolve_database_url()


def _register_sqlite_functions(dbapi_connection, connection_record) -> None:
    dbapi_connection.create_function(CASEFOLD_FUNCTION, 1, casefold_text, deterministic=True)


def build_engine(database_url: str) -> Engine:
    database_url = normalize_database_url(database_url)
    is_sqlite = database_url.startswith("sqlite")
    connect_args: dict[str, object] = {"check_same_thread": False} if is_sqlite else {}
    engine = create_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    if is_sqlite:
        event.listen(engine, "connect", _register_sqlite_functions)
    return engine


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        future=True,
        expire_on_commit=False,
    )


engine: Engine = build_engine(DATABASE_URL)

SessionLocal = build_session_factory(engine)


def run_in_session(
    fn: Callable[[Session], T],
    *,
    session_factory: sessionmaker[Session] | None = None,
) -> T:
    """Run ``fn`` inside one transaction, committing on success and rolling back on error."""

    factory = session_factory or SessionLocal
    with factory() as session:
        try:
            result = fn(session)
            session.commit()
        except BaseException:
            session.rollback()
            raise
        return result


__all__ = [
    "Base",
    "DATABASE_URL",
    "SessionLocal",
    "build_engine",
    "build_session_factory",
    "engine",
    "normalize_database_url",
    "run_in_session",
]
