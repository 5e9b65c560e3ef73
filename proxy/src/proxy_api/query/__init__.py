"""Filter compilation, sort resolution and query plan construction."""

from .dialects import PostgresDialect, SqlDialect, SqliteDialect, dialect_for
from .filters import EMPTY_FILTER, ServerFilter
from .plan import (
    QueryPlan,
    build_count_plan,
    build_detail_plan,
    build_query_plan,
    build_stats_plan,
    build_trending_plan,
)
from .predicates import CompiledFilter, compile_filter
from .sorting import DEFAULT_SORT, VALID_SORT_TOKENS, normalize_sort_token, resolve_sort
from .sql import Fragment, renumber_placeholders

__all__ = [
    "CompiledFilter",
    "DEFAULT_SORT",
    "EMPTY_FILTER",
    "Fragment",
    "PostgresDialect",
    "QueryPlan",
    "ServerFilter",
    "SqlDialect",
    "SqliteDialect",
    "VALID_SORT_TOKENS",
    "build_count_plan",
    "build_detail_plan",
    "build_query_plan",
    "build_stats_plan",
    "build_trending_plan",
    "compile_filter",
    "dialect_for",
    "normalize_sort_token",
    "renumber_placeholders",
    "resolve_sort",
]
