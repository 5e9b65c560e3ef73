"""SQL dialect primitives used when rendering predicates and plans.

Every method returns server-controlled SQL text. Client values only travel
through the ``params`` of the returned :class:`Fragment`.
"""

from __future__ import annotations

import re
from typing import Sequence

from .sql import Fragment, placeholder_list

_JSON_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

LIKE_ESCAPE = "\\"

CASEFOLD_FUNCTION = "casefold"


def casefold_text(value: object) -> object:
    """Unicode case folding for SQL text values; other values pass through."""

    return value.casefold() if isinstance(value, str) else value


def _checked_keys(keys: Sequence[str]) -> Sequence[str]:
    for key in keys:
        if not _JSON_KEY.match(key):
            raise ValueError(f"Unsupported JSON key '{key}'.")
    return keys


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally."""

    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class SqlDialect:
    """Renders the closed vocabulary of query shapes for one database."""

    name = "generic"

    def true_literal(self) -> str:
        raise NotImplementedError

    def json_text(self, value_column: str, *path: str) -> str:
        raise NotImplementedError

    def days_ago(self, days: int) -> str:
        raise NotImplementedError

    def substring(self, expressions: Sequence[str], value: str) -> Fragment:
        raise NotImplementedError

    def array_overlap(self, value_column: str, key: str, values: Sequence[str]) -> Fragment:
        raise NotImplementedError

    def exists_in_array(
        self,
        value_column: str,
        array_key: str,
        path: Sequence[str],
        values: Sequence[str],
    ) -> Fragment:
        raise NotImplementedError

    def non_empty_array(self, value_column: str, array_key: str) -> str:
        raise NotImplementedError


class PostgresDialect(SqlDialect):
    """JSONB operators for PostgreSQL."""

    name = "postgresql"

    def true_literal(self) -> str:
        return "true"

    def json_text(self, value_column: str, *path: str) -> str:
        keys = _checked_keys(path)
        if len(keys) == 1:
            return f"{value_column}->>'{keys[0]}'"
        prefix = "".join(f"->'{key}'" for key in keys[:-1])
        return f"{value_column}{prefix}->>'{keys[-1]}'"

    def days_ago(self, days: int) -> str:
        return f"NOW() - INTERVAL '{int(days)} days'"

    def substring(self, expressions: Sequence[str], value: str) -> Fragment:
        clauses = [f"{expression} ILIKE $1 ESCAPE '{LIKE_ESCAPE}'" for expression in expressions]
        return Fragment(f"({' OR '.join(clauses)})", (f"%{escape_like(value)}%",))

    def array_overlap(self, value_column: str, key: str, values: Sequence[str]) -> Fragment:
        (key,) = _checked_keys((key,))
        return Fragment(f"({value_column}->'{key}') ?| $1", (list(values),))

    def exists_in_array(
        self,
        value_column: str,
        array_key: str,
        path: Sequence[str],
        values: Sequence[str],
    ) -> Fragment:
        (array_key,) = _checked_keys((array_key,))
        element = self.json_text("elem.value", *path)
        return Fragment(
            f"EXISTS (SELECT 1 FROM jsonb_array_elements({value_column}->'{array_key}') AS elem "
            f"WHERE {element} = ANY($1))",
            (list(values),),
        )

    def non_empty_array(self, value_column: str, array_key: str) -> str:
        (array_key,) = _checked_keys((array_key,))
        return (
            f"(jsonb_typeof({value_column}->'{array_key}') = 'array' "
            f"AND jsonb_array_length({value_column}->'{array_key}') > 0)"
        )


class SqliteDialect(SqlDialect):
    """JSON1 functions for SQLite; list parameters expand to one bind each."""

    name = "sqlite"

    def true_literal(self) -> str:
        return "1"

    def _json_path(self, keys: Sequence[str]) -> str:
        return "$." + ".".join(_checked_keys(keys))

    def json_text(self, value_column: str, *path: str) -> str:
        return f"json_extract({value_column}, '{self._json_path(path)}')"

    def days_ago(self, days: int) -> str:
        return f"datetime('now', '-{int(days)} days')"

    def substring(self, expressions: Sequence[str], value: str) -> Fragment:
        # SQLite's lower() only folds ASCII; build_engine registers casefold.
        clauses = [
            f"{CASEFOLD_FUNCTION}({expression}) LIKE $1 ESCAPE '{LIKE_ESCAPE}'" for expression in expressions
        ]
        return Fragment(f"({' OR '.join(clauses)})", (f"%{escape_like(value.casefold())}%",))

    def array_overlap(self, value_column: str, key: str, values: Sequence[str]) -> Fragment:
        return Fragment(
            f"EXISTS (SELECT 1 FROM json_each({value_column}, '{self._json_path((key,))}') AS elem "
            f"WHERE elem.value IN ({placeholder_list(1, len(values))}))",
            tuple(values),
        )

    def exists_in_array(
        self,
        value_column: str,
        array_key: str,
        path: Sequence[str],
        values: Sequence[str],
    ) -> Fragment:
        element = self.json_text("elem.value", *path)
        return Fragment(
            f"EXISTS (SELECT 1 FROM json_each({value_column}, '{self._json_path((array_key,))}') AS elem "
            f"WHERE {element} IN ({placeholder_list(1, len(values))}))",
            tuple(values),
        )

    def non_empty_array(self, value_column: str, array_key: str) -> str:
        return f"(json_array_length({value_column}, '{self._json_path((array_key,))}') > 0)"


_DIALECTS: dict[str, type[SqlDialect]] = {
    PostgresDialect.name: PostgresDialect,
    SqliteDialect.name: SqliteDialect,
}


def dialect_for(name: str) -> SqlDialect:
    """Return the dialect for a SQLAlchemy dialect name (``engine.dialect.name``)."""

    try:
        return _DIALECTS[name]()
    except KeyError as exc:
        raise ValueError(f"Unsupported database dialect '{name}'.") from exc


__all__ = [
    "CASEFOLD_FUNCTION",
    "PostgresDialect",
    "SqlDialect",
    "SqliteDialect",
    "casefold_text",
    "dialect_for",
    "escape_like",
]
