"""Filter compiler: turns a :class:`ServerFilter` into tagged predicates.

Predicates are plain data. Rendering happens against a :class:`Scope`
(which column expressions the stage exposes) and a :class:`SqlDialect`,
and always yields a :class:`Fragment` whose text comes from the server
vocabulary; client values only ever appear in its parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence, Union

from .dialects import SqlDialect
from .filters import ServerFilter
from .sql import Fragment, join_fragments

REMOTE_REGISTRY_TYPE = "remote"
REMOTE_TRANSPORT_TYPES: tuple[str, ...] = ("sse", "http", "streamable-http")

Metric = Literal["rating", "rating_count", "installation_count"]


@dataclass(frozen=True)
class Scope:
    """Column expressions visible to predicates in one query stage."""

    name: str
    value: str
    rating: str
    rating_count: str
    installation_count: str
    published_at: str
    updated_at: str
    engagement_updated_at: Optional[str] = None


FILTERING_SCOPE = Scope(
    name="d.name",
    value="d.value",
    rating="COALESCE(ea.rating, 0)",
    rating_count="COALESCE(ea.rating_count, 0)",
    installation_count="COALESCE(ea.installation_count, 0)",
    published_at="d.published_at",
    updated_at="d.updated_at",
    engagement_updated_at="ea.updated_at",
)

PROJECTION_SCOPE = Scope(
    name="fs.server_name",
    value="fs.value",
    rating="fs.rating",
    rating_count="fs.rating_count",
    installation_count="fs.installation_count",
    published_at="fs.published_at",
    updated_at="fs.updated_at",
)


@dataclass(frozen=True)
class Equality:
    key: str
    value: str

    def render(self, dialect: SqlDialect, scope: Scope) -> Fragment:
        return Fragment(f"{dialect.json_text(scope.value, self.key)} = $1", (self.value,))


@dataclass(frozen=True)
class NameEquals:
    value: str

    def render(self, dialect: SqlDialect, scope: Scope) -> Fragment:
        return Fragment(f"{scope.name} = $1", (self.value,))


@dataclass(frozen=True)
class Substring:
    """Case-insensitive substring on the document name and JSON keys."""

    keys: tuple[str, ...]
    value: str
    include_name: bool = True

    def render(self, dialect: SqlDialect, scope: Scope) -> Fragment:
        expressions = [scope.name] if self.include_name else []
        expressions.extend(dialect.json_text(scope.value, key) for key in self.keys)
        return dialect.substring(expressions, self.value)


@dataclass(frozen=True)
class ArrayOverlap:
    key: str
    values: tuple[str, ...]

    def render(self, dialect: SqlDialect, scope: Scope) -> Fragment:
        return dialect.array_overlap(scope.value, self.key, self.values)


@dataclass(frozen=True)
class AtLeast:
    metric: Metric
    threshold: float

    def render(self, dialect: SqlDialect, scope: Scope) -> Fragment:
        return Fragment(f"{getattr(scope, self.metric)} >= $1", (self.threshold,))


@dataclass(frozen=True)
class ExistsInNestedArray:
    """Some element of ``value[array_key]`` has ``path`` equal to one of ``values``."""

    array_key: str
    path: tuple[str, ...]
    values: tuple[str, ...]

    def render(self, dialect: SqlDialect, scope: Scope) -> Fragment:
        return dialect.exists_in_array(scope.value, self.array_key, self.path, self.values)


@dataclass(frozen=True)
class NonEmptyArray:
    array_key: str

    def render(self, dialect: SqlDialect, scope: Scope) -> Fragment:
        return Fragment(dialect.non_empty_array(scope.value, self.array_key))


@dataclass(frozen=True)
class RecentActivity:
    """Published, updated or engaged with inside the last ``days`` days."""

    days: int

    def render(self, dialect: SqlDialect, scope: Scope) -> Fragment:
        cutoff = dialect.days_ago(self.days)
        columns = [scope.published_at, scope.updated_at]
        if scope.engagement_updated_at:
            columns.append(scope.engagement_updated_at)
        return Fragment("(" + " OR ".join(f"{column} > {cutoff}" for column in columns) + ")")


@dataclass(frozen=True)
class AnyOf:
    predicates: tuple["Predicate", ...]

    def render(self, dialect: SqlDialect, scope: Scope) -> Fragment:
        joined = join_fragments(
            (predicate.render(dialect, scope) for predicate in self.predicates),
            " OR ",
        )
        return Fragment(f"({joined.sql})", joined.params)


Predicate = Union[
    Equality,
    NameEquals,
    Substring,
    ArrayOverlap,
    AtLeast,
    ExistsInNestedArray,
    NonEmptyArray,
    RecentActivity,
    AnyOf,
]


@dataclass(frozen=True)
class CompiledFilter:
    """Predicates for the filtering stage (``inner``) and projection stage (``outer``)."""

    inner: tuple[Predicate, ...] = ()
    outer: tuple[Predicate, ...] = ()


def registry_type_predicate(registry_types: Sequence[str]) -> Optional[Predicate]:
    """Exists-predicate over package registry types, with ``remote`` mapped to remotes."""

    package_types = tuple(item for item in registry_types if item != REMOTE_REGISTRY_TYPE)
    branches: list[Predicate] = []
    if package_types:
        branches.append(ExistsInNestedArray("packages", ("registryType",), package_types))
    if REMOTE_REGISTRY_TYPE in registry_types:
        branches.append(ExistsInNestedArray("remotes", ("type",), REMOTE_TRANSPORT_TYPES))
    if not branches:
        return None
    if len(branches) == 1:
        return branches[0]
    return AnyOf(tuple(branches))


def compile_filter(server_filter: ServerFilter) -> CompiledFilter:
    inner: list[Predicate] = []
    outer: list[Predicate] = []

    if server_filter.search:
        inner.append(Substring(("description",), server_filter.search))
    if server_filter.category:
        inner.append(Equality("category", server_filter.category))
    if server_filter.tags:
        inner.append(ArrayOverlap("tags", server_filter.tags))
    if server_filter.min_rating is not None:
        inner.append(AtLeast("rating", server_filter.min_rating))
    if server_filter.min_installs is not None:
        inner.append(AtLeast("installation_count", server_filter.min_installs))

    registry_predicate = registry_type_predicate(server_filter.registry_types)
    if registry_predicate is not None:
        outer.append(registry_predicate)
    if server_filter.transports:
        outer.append(ExistsInNestedArray("packages", ("transport", "type"), server_filter.transports))

    return CompiledFilter(inner=tuple(inner), outer=tuple(outer))


def render_predicates(
    predicates: Sequence[Predicate],
    dialect: SqlDialect,
    scope: Scope,
) -> Optional[Fragment]:
    """AND the rendered predicates together; ``None`` when there are none."""

    if not predicates:
        return None
    return join_fragments(
        (predicate.render(dialect, scope) for predicate in predicates),
        " AND ",
    )


__all__ = [
    "AnyOf",
    "ArrayOverlap",
    "AtLeast",
    "CompiledFilter",
    "Equality",
    "ExistsInNestedArray",
    "FILTERING_SCOPE",
    "NameEquals",
    "NonEmptyArray",
    "PROJECTION_SCOPE",
    "Predicate",
    "REMOTE_TRANSPORT_TYPES",
    "RecentActivity",
    "Scope",
    "Substring",
    "compile_filter",
    "registry_type_predicate",
    "render_predicates",
]
