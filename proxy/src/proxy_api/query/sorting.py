"""Whitelisted sort tokens and their ORDER BY expressions."""

from __future__ import annotations

from typing import Callable

from proxy_api.errors import InvalidSortError

from .dialects import SqlDialect
from .predicates import PROJECTION_SCOPE, Scope

DEFAULT_SORT = "created"

TRENDING_INSTALL_WEIGHT = 0.3
TRENDING_REVIEW_WEIGHT = 0.3
TRENDING_RATING_WEIGHT = 10
TRENDING_RECENCY_STEPS: tuple[tuple[int, int], ...] = ((7, 20), (30, 10))


def trending_expression(dialect: SqlDialect, scope: Scope = PROJECTION_SCOPE) -> str:
    recency = " ".join(
        f"WHEN {scope.updated_at} > {dialect.days_ago(days)} THEN {bonus}"
        for days, bonus in TRENDING_RECENCY_STEPS
    )
    return (
        f"({scope.installation_count} * {TRENDING_INSTALL_WEIGHT}"
        f" + {scope.rating_count} * {TRENDING_REVIEW_WEIGHT}"
        f" + {scope.rating} * {TRENDING_RATING_WEIGHT}"
        f" + CASE {recency} ELSE 0 END)"
    )


_SORT_KEYS: dict[str, Callable[[SqlDialect, Scope], list[str]]] = {
    "created": lambda dialect, scope: [f"{scope.published_at} DESC"],
    "name_asc": lambda dialect, scope: [f"{scope.name} ASC"],
    "name_desc": lambda dialect, scope: [f"{scope.name} DESC"],
    "updated": lambda dialect, scope: [f"{scope.updated_at} DESC"],
    "rating_desc": lambda dialect, scope: [f"{scope.rating} DESC", f"{scope.rating_count} DESC"],
    "reviews_desc": lambda dialect, scope: [f"{scope.rating_count} DESC"],
    "installs_desc": lambda dialect, scope: [f"{scope.installation_count} DESC"],
    "trending": lambda dialect, scope: [f"{trending_expression(dialect, scope)} DESC"],
}

VALID_SORT_TOKENS: tuple[str, ...] = tuple(_SORT_KEYS)


def normalize_sort_token(token: str | None) -> str:
    """Map the empty token to the default; reject anything off the whitelist."""

    if token is None or token == "":
        return DEFAULT_SORT
    if token not in _SORT_KEYS:
        raise InvalidSortError(token, list(VALID_SORT_TOKENS))
    return token


def resolve_sort(
    token: str | None,
    dialect: SqlDialect,
    scope: Scope = PROJECTION_SCOPE,
) -> str:
    """Return the ORDER BY expression list for ``token``.

    Every ordering ends with the document name so pages are stable.
    """

    keys = _SORT_KEYS[normalize_sort_token(token)](dialect, scope)
    if not any(key.startswith(f"{scope.name} ") for key in keys):
        keys.append(f"{scope.name} ASC")
    return ", ".join(keys)


__all__ = [
    "DEFAULT_SORT",
    "VALID_SORT_TOKENS",
    "normalize_sort_token",
    "resolve_sort",
    "trending_expression",
]
