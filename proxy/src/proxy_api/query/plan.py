"""Query plan builder for enriched server reads.

A plan is one statement made of two stages:

* the filtering stage (``filtered_servers``) joins latest documents with
  their engagement aggregate and applies the inner predicates;
* the projection stage applies the outer predicates, the resolved ordering,
  the page window and the windowed total.

The projection stage is rendered on its own, numbered from ``$1``, and then
shifted past the filtering stage's arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from sqlalchemy.sql.expression import Executable

from proxy_api.errors import ValidationError

from .dialects import SqlDialect
from .filters import ServerFilter
from .predicates import (
    FILTERING_SCOPE,
    PROJECTION_SCOPE,
    NameEquals,
    NonEmptyArray,
    Predicate,
    RecentActivity,
    compile_filter,
    registry_type_predicate,
    render_predicates,
)
from .sorting import resolve_sort, trending_expression
from .sql import Fragment, join_fragments, to_text_clause

FILTERING_STAGE = "filtered_servers"
RECORD_COLUMNS: tuple[str, ...] = (
    "server_name",
    "value",
    "published_at",
    "updated_at",
    "rating",
    "rating_count",
    "installation_count",
)
DATETIME_COLUMNS: tuple[str, ...] = ("published_at", "updated_at")
STATS_REGISTRY_TYPES: tuple[str, ...] = ("npm", "pypi", "oci", "remote")
TRENDING_WINDOW_DAYS = 30
RECENT_WINDOW_DAYS = 7


@dataclass(frozen=True)
class QueryPlan:
    sql: str
    params: tuple[Any, ...] = ()
    datetime_columns: tuple[str, ...] = ()

    @property
    def fragment(self) -> Fragment:
        return Fragment(self.sql, self.params)

    def statement(self) -> tuple[Executable, dict[str, Any]]:
        return to_text_clause(self.fragment, datetime_columns=self.datetime_columns)


def build_filtering_stage(predicates: Sequence[Predicate], dialect: SqlDialect) -> Fragment:
    scope = FILTERING_SCOPE
    conditions = [Fragment(f"d.is_latest = {dialect.true_literal()}")]
    rendered = render_predicates(predicates, dialect, scope)
    if rendered is not None:
        conditions.append(rendered)
    where = join_fragments(conditions, " AND ")
    sql = (
        f"SELECT {scope.name} AS server_name, {scope.value} AS value, "
        f"{scope.published_at} AS published_at, {scope.updated_at} AS updated_at, "
        f"{scope.rating} AS rating, {scope.rating_count} AS rating_count, "
        f"{scope.installation_count} AS installation_count "
        "FROM documents AS d "
        "LEFT JOIN engagement_aggregate AS ea ON ea.document_id = d.name "
        f"WHERE {where.sql}"
    )
    return Fragment(sql, where.params)


def _record_columns() -> str:
    return ", ".join(f"fs.{column}" for column in RECORD_COLUMNS)


def _with_stage(filtering: Fragment, projection: Fragment) -> Fragment:
    shifted = projection.shifted(len(filtering.params))
    return Fragment(
        f"WITH {FILTERING_STAGE} AS ({filtering.sql}) {shifted.sql}",
        filtering.params + shifted.params,
    )


def _where(fragment: Optional[Fragment]) -> Fragment:
    if fragment is None:
        return Fragment("")
    return Fragment(f" WHERE {fragment.sql}", fragment.params)


def build_query_plan(
    server_filter: ServerFilter,
    sort_token: Optional[str],
    limit: int,
    offset: int,
    *,
    dialect: SqlDialect,
) -> QueryPlan:
    """Build the paged statement; raises :class:`InvalidSortError` before any work."""

    order_by = resolve_sort(sort_token, dialect)
    if limit <= 0:
        raise ValidationError("limit must be positive")
    if offset < 0:
        raise ValidationError("offset must not be negative")

    compiled = compile_filter(server_filter)
    filtering = build_filtering_stage(compiled.inner, dialect)

    outer = _where(render_predicates(compiled.outer, dialect, PROJECTION_SCOPE))
    window_start = len(outer.params) + 1
    projection = Fragment(
        f"SELECT {_record_columns()}, COUNT(*) OVER() AS total_count "
        f"FROM {FILTERING_STAGE} AS fs{outer.sql} "
        f"ORDER BY {order_by} "
        f"LIMIT ${window_start} OFFSET ${window_start + 1}",
        outer.params + (limit, offset),
    )
    combined = _with_stage(filtering, projection)
    return QueryPlan(combined.sql, combined.params, DATETIME_COLUMNS)


def build_count_plan(server_filter: ServerFilter, *, dialect: SqlDialect) -> QueryPlan:
    """Total matching rows for a filter, used when a page comes back empty."""

    compiled = compile_filter(server_filter)
    filtering = build_filtering_stage(compiled.inner, dialect)
    outer = _where(render_predicates(compiled.outer, dialect, PROJECTION_SCOPE))
    projection = Fragment(
        f"SELECT COUNT(*) AS total_count FROM {FILTERING_STAGE} AS fs{outer.sql}",
        outer.params,
    )
    combined = _with_stage(filtering, projection)
    return QueryPlan(combined.sql, combined.params)


def build_detail_plan(name: str, *, dialect: SqlDialect) -> QueryPlan:
    filtering = build_filtering_stage((NameEquals(name),), dialect)
    projection = Fragment(
        f"SELECT {_record_columns()} FROM {FILTERING_STAGE} AS fs"
    )
    combined = _with_stage(filtering, projection)
    return QueryPlan(combined.sql, combined.params, DATETIME_COLUMNS)


def build_stats_plan(*, dialect: SqlDialect) -> QueryPlan:
    """Registry-wide totals; the registry breakdown reuses the compiler's predicates."""

    scope = PROJECTION_SCOPE
    recent = dialect.days_ago(RECENT_WINDOW_DAYS)
    columns: list[Fragment] = [
        Fragment("COUNT(*) AS total_servers"),
        _count_when(NonEmptyArray("packages").render(dialect, scope), "servers_with_packages"),
        Fragment(f"COALESCE(SUM(CASE WHEN {scope.rating_count} > 0 THEN 1 ELSE 0 END), 0) AS rated_servers"),
        Fragment(f"AVG(CASE WHEN {scope.rating_count} > 0 THEN {scope.rating} END) AS average_rating"),
        Fragment(f"COALESCE(SUM({scope.rating_count}), 0) AS total_reviews"),
        Fragment(f"COALESCE(SUM({scope.installation_count}), 0) AS total_installs"),
        Fragment(f"COALESCE(SUM(CASE WHEN {scope.published_at} > {recent} THEN 1 ELSE 0 END), 0) AS new_this_week"),
        Fragment(f"COALESCE(SUM(CASE WHEN {scope.updated_at} > {recent} THEN 1 ELSE 0 END), 0) AS updated_this_week"),
    ]
    for registry_type in STATS_REGISTRY_TYPES:
        predicate = registry_type_predicate((registry_type,))
        if predicate is None:
            continue
        columns.append(_count_when(predicate.render(dialect, scope), f"{registry_type}_servers"))

    selected = join_fragments(columns, ", ")
    projection = Fragment(f"SELECT {selected.sql} FROM {FILTERING_STAGE} AS fs", selected.params)
    combined = _with_stage(build_filtering_stage((), dialect), projection)
    return QueryPlan(combined.sql, combined.params)


def _count_when(condition: Fragment, label: str) -> Fragment:
    return Fragment(
        f"COALESCE(SUM(CASE WHEN {condition.sql} THEN 1 ELSE 0 END), 0) AS {label}",
        condition.params,
    )


def build_trending_plan(limit: int, *, dialect: SqlDialect) -> QueryPlan:
    """Recently active servers ordered by their trending score."""

    if limit <= 0:
        raise ValidationError("limit must be positive")
    filtering = build_filtering_stage((RecentActivity(TRENDING_WINDOW_DAYS),), dialect)
    projection = Fragment(
        f"SELECT {_record_columns()}, {trending_expression(dialect)} AS trending_score "
        f"FROM {FILTERING_STAGE} AS fs "
        f"ORDER BY {resolve_sort('trending', dialect)} "
        "LIMIT $1",
        (limit,),
    )
    combined = _with_stage(filtering, projection)
    return QueryPlan(combined.sql, combined.params, DATETIME_COLUMNS)


__all__ = [
    "DATETIME_COLUMNS",
    "FILTERING_STAGE",
    "QueryPlan",
    "RECORD_COLUMNS",
    "build_count_plan",
    "build_detail_plan",
    "build_filtering_stage",
    "build_query_plan",
    "build_stats_plan",
    "build_trending_plan",
]
