"""Parameterized SQL fragments with positional ``$n`` placeholders."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import DateTime, text
from sqlalchemy.sql.expression import Executable

_PLACEHOLDER = re.compile(r"\$(\d+)\b")


@dataclass(frozen=True)
class Fragment:
    """SQL text numbered from ``$1`` together with its bound arguments."""

    sql: str
    params: tuple[Any, ...] = ()

    def shifted(self, offset: int) -> "Fragment":
        return Fragment(renumber_placeholders(self.sql, offset), self.params)


def renumber_placeholders(sql: str, offset: int) -> str:
    """Shift every ``$n`` placeholder by ``offset``.

    Placeholders are matched as whole tokens, so ``$1`` and ``$10`` are
    shifted independently.
    """

    if offset == 0:
        return sql
    return _PLACEHOLDER.sub(lambda match: f"${int(match.group(1)) + offset}", sql)


def join_fragments(fragments: Iterable[Fragment], separator: str) -> Fragment:
    """Concatenate fragments, renumbering each by the arguments seen so far."""

    parts: list[str] = []
    params: list[Any] = []
    for fragment in fragments:
        parts.append(renumber_placeholders(fragment.sql, len(params)))
        params.extend(fragment.params)
    return Fragment(separator.join(parts), tuple(params))


def placeholder_list(start: int, count: int) -> str:
    return ", ".join(f"${index}" for index in range(start, start + count))


def to_text_clause(
    fragment: Fragment,
    *,
    datetime_columns: Iterable[str] = (),
) -> tuple[Executable, dict[str, Any]]:
    """Convert ``$n`` placeholders to SQLAlchemy named binds ``:pn``."""

    sql = _PLACEHOLDER.sub(lambda match: f":p{match.group(1)}", fragment.sql)
    binds = {f"p{index}": value for index, value in enumerate(fragment.params, start=1)}
    clause = text(sql)
    types = {name: DateTime(timezone=True) for name in datetime_columns}
    if types:
        return clause.columns(**types), binds
    return clause, binds


__all__ = [
    "Fragment",
    "join_fragments",
    "placeholder_list",
    "renumber_placeholders",
    "to_text_clause",
]
