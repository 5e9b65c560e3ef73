import re

import pytest

from proxy_api.errors import InvalidSortError, ValidationError
from proxy_api.query.dialects import PostgresDialect, SqliteDialect
from proxy_api.query.filters import EMPTY_FILTER, ServerFilter
from proxy_api.query.plan import (
    build_count_plan,
    build_detail_plan,
    build_query_plan,
    build_stats_plan,
    build_trending_plan,
)

_PLACEHOLDER = re.compile(r"\$(\d+)\b")


def _placeholders(sql: str) -> list[int]:
    return sorted({int(value) for value in _PLACEHOLDER.findall(sql)})


def test_empty_filter_plan_only_binds_the_window() -> None:
    plan = build_query_plan(EMPTY_FILTER, None, 20, 40, dialect=PostgresDialect())

    assert plan.params == (20, 40)
    assert plan.sql.startswith("WITH filtered_servers AS (")
    assert "WHERE d.is_latest = true)" in plan.sql
    assert plan.sql.endswith("ORDER BY fs.published_at DESC, fs.server_name ASC LIMIT $1 OFFSET $2")
    assert "COUNT(*) OVER() AS total_count" in plan.sql


def test_projection_placeholders_follow_filtering_placeholders() -> None:
    server_filter = ServerFilter(
        search="git",
        category="dev",
        min_rating=4.0,
        registry_types=("npm", "pypi"),
        transports=("stdio",),
    )
    plan = build_query_plan(server_filter, "rating_desc", 10, 5, dialect=SqliteDialect())

    assert plan.params == ("%git%", "dev", 4.0, "npm", "pypi", "stdio", 10, 5)
    assert _placeholders(plan.sql) == list(range(1, len(plan.params) + 1))
    assert plan.sql.endswith("LIMIT $7 OFFSET $8")
    filtering, projection = plan.sql.split(") SELECT ", 1)
    assert _placeholders(filtering) == [1, 2, 3]
    assert _placeholders(projection) == [4, 5, 6, 7, 8]


def test_plans_with_ten_or_more_params_keep_placeholders_distinct() -> None:
    tags = tuple(f"tag{index}" for index in range(12))
    plan = build_query_plan(ServerFilter(tags=tags, registry_types=("npm",)), None, 5, 0, dialect=SqliteDialect())

    assert len(plan.params) == 15
    assert plan.params[-2:] == (5, 0)
    assert _placeholders(plan.sql) == list(range(1, 16))
    assert plan.sql.endswith("LIMIT $14 OFFSET $15")


def test_statement_binds_match_params() -> None:
    plan = build_query_plan(ServerFilter(category="dev"), "name_asc", 3, 0, dialect=SqliteDialect())
    statement, binds = plan.statement()

    assert binds == {"p1": "dev", "p2": 3, "p3": 0}
    assert _PLACEHOLDER.search(str(statement)) is None
    assert ":p1" in str(statement)


def test_invalid_sort_fails_before_building() -> None:
    with pytest.raises(InvalidSortError):
        build_query_plan(EMPTY_FILTER, "nope", 10, 0, dialect=PostgresDialect())


@pytest.mark.parametrize(("limit", "offset"), [(0, 0), (-1, 0), (10, -1)])
def test_invalid_window_is_rejected(limit, offset) -> None:
    with pytest.raises(ValidationError):
        build_query_plan(EMPTY_FILTER, None, limit, offset, dialect=PostgresDialect())


def test_count_plan_uses_same_predicates_without_window() -> None:
    server_filter = ServerFilter(min_installs=5, transports=("sse",))
    plan = build_count_plan(server_filter, dialect=PostgresDialect())

    assert plan.params == (5, ["sse"])
    assert "SELECT COUNT(*) AS total_count FROM filtered_servers AS fs WHERE" in plan.sql
    assert "LIMIT" not in plan.sql


def test_detail_plan_binds_name() -> None:
    plan = build_detail_plan("io.example/alpha", dialect=SqliteDialect())

    assert plan.params == ("io.example/alpha",)
    assert "d.name = $1" in plan.sql
    assert "d.is_latest = 1" in plan.sql


def test_stats_plan_reuses_registry_predicates() -> None:
    plan = build_stats_plan(dialect=PostgresDialect())

    assert plan.params == (["npm"], ["pypi"], ["oci"], ["sse", "http", "streamable-http"])
    for column in ("total_servers", "npm_servers", "remote_servers", "new_this_week"):
        assert f"AS {column}" in plan.sql
    assert _placeholders(plan.sql) == [1, 2, 3, 4]


def test_trending_plan_limits_to_recent_activity() -> None:
    plan = build_trending_plan(10, dialect=SqliteDialect())

    assert plan.params == (10,)
    assert "d.published_at > datetime('now', '-30 days')" in plan.sql
    assert "ea.updated_at > datetime('now', '-30 days')" in plan.sql
    assert "AS trending_score" in plan.sql
