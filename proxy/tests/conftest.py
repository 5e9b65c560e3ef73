import os

os.environ.setdefault("REGISTRY_PROXY_DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from proxy_api.app import create_app  # noqa: E402
from proxy_api.config.settings import ProxySettings  # noqa: E402
from proxy_api.db.base import Base  # noqa: E402
from proxy_api.db.models import DocumentRecord, EngagementAggregateRecord  # noqa: E402
from proxy_api.db.session import build_engine, build_session_factory  # noqa: E402
from proxy_api.service.cache import EnrichedServerCache  # noqa: E402
from proxy_api.service.container import build_services  # noqa: E402

NOW = datetime.now(timezone.utc).replace(microsecond=0)


class FakeClock:
    """Monotonic clock stand-in that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class StepClock:
    """Wall clock returning a strictly increasing UTC time on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


def _server_value(
    name: str,
    *,
    description: str,
    category: str,
    tags: list[str],
    packages: Optional[list[dict[str, Any]]] = None,
    remotes: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    value: dict[str, Any] = {
        "name": name,
        "description": description,
        "category": category,
        "tags": tags,
        "repository": {"url": f"https://github.com/example/{name.split('/')[-1]}", "source": "github"},
    }
    if packages is not None:
        value["packages"] = packages
    if remotes is not None:
        value["remotes"] = remotes
    return value


def _npm(identifier: str, transport: str = "stdio") -> dict[str, Any]:
    return {"registryType": "npm", "identifier": identifier, "version": "1.0.0", "transport": {"type": transport}}


# name -> (value, published days ago, (rating, rating_count, installation_count))
SAMPLE_DOCUMENTS: dict[str, tuple[dict[str, Any], int, Optional[tuple[float, int, int]]]] = {
    "io.example/alpha": (
        _server_value(
            "io.example/alpha",
            description="File system access for agents",
            category="files",
            tags=["files", "local"],
            packages=[_npm("@modelcontextprotocol/server-alpha")],
        ),
        90,
        (4.8, 12, 150),
    ),
    "io.example/bravo": (
        _server_value(
            "io.example/bravo",
            description="Issue tracker bridge",
            category="productivity",
            tags=["issues"],
            packages=[_npm("bravo-mcp", transport="sse")],
        ),
        45,
        (4.2, 5, 30),
    ),
    "io.example/charlie": (
        _server_value(
            "io.example/charlie",
            description="Calendar sync",
            category="productivity",
            tags=["calendar", "local"],
            packages=[_npm("charlie-mcp")],
        ),
        20,
        (4.0, 3, 10),
    ),
    "io.example/delta": (
        _server_value(
            "io.example/delta",
            description="Database explorer",
            category="data",
            tags=["sql"],
            packages=[_npm("delta-mcp")],
        ),
        10,
        (3.5, 8, 200),
    ),
    "io.example/echo": (
        _server_value(
            "io.example/echo",
            description="Hosted search with 100% uptime",
            category="search",
            tags=["search", "web"],
            packages=[
                {"registryType": "pypi", "identifier": "echo-mcp", "version": "2.0.0", "transport": {"type": "stdio"}}
            ],
            remotes=[{"type": "streamable-http", "url": "https://echo.example.com/mcp"}],
        ),
        2,
        None,
    ),
}


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{(tmp_path / 'proxy.db').as_posix()}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def add_document(session_factory):
    def _add(
        name: str,
        value: Any,
        *,
        published_days_ago: int = 1,
        updated_days_ago: Optional[int] = None,
        version: str = "1.0.0",
        is_latest: bool = True,
        aggregate: Optional[tuple[float, int, int]] = None,
    ) -> None:
        published_at = NOW - timedelta(days=published_days_ago)
        updated_at = published_at if updated_days_ago is None else NOW - timedelta(days=updated_days_ago)
        with session_factory() as session:
            session.add(
                DocumentRecord(
                    name=name,
                    version=version,
                    value=value,
                    published_at=published_at,
                    updated_at=updated_at,
                    is_latest=is_latest,
                )
            )
            if aggregate is not None:
                rating, rating_count, installation_count = aggregate
                session.add(
                    EngagementAggregateRecord(
                        document_id=name,
                        rating=rating,
                        rating_count=rating_count,
                        installation_count=installation_count,
                        created_at=published_at,
                        updated_at=published_at,
                    )
                )
            session.commit()

    return _add


@pytest.fixture
def seeded(add_document):
    for name, (value, days_ago, aggregate) in SAMPLE_DOCUMENTS.items():
        add_document(name, value, published_days_ago=days_ago, aggregate=aggregate)
    # Superseded version of alpha; never visible to queries.
    add_document(
        "io.example/alpha",
        {**SAMPLE_DOCUMENTS["io.example/alpha"][0], "description": "old alpha"},
        published_days_ago=200,
        version="0.9.0",
        is_latest=False,
    )
    return SAMPLE_DOCUMENTS


@pytest.fixture
def settings():
    return ProxySettings(
        cache_ttl_seconds=300,
        cache_cleanup_interval_seconds=600,
        default_page_size=20,
        max_page_size=1000,
        collection_size=10000,
        request_timeout_seconds=5,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def step_clock():
    return StepClock(NOW)


@pytest.fixture
def cache(settings, clock):
    return EnrichedServerCache(
        settings.cache_ttl_seconds,
        settings.cache_cleanup_interval_seconds,
        clock=clock,
    )


@pytest.fixture
def services(engine, session_factory, settings, cache, seeded):
    return build_services(
        bind=engine,
        session_factory=session_factory,
        settings=settings,
        cache=cache,
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services))
