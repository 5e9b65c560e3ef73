"""Translate SQLAlchemy failures into domain errors at service boundaries."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from proxy_api.errors import DataLayerError, QueryTimeoutError

LOGGER = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for a statement cancelled by statement_timeout.
QUERY_CANCELED = "57014"


def _is_timeout(exc: SQLAlchemyError) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    return getattr(exc.orig, "sqlstate", None) == QUERY_CANCELED


@contextmanager
def data_layer_errors(operation: str) -> Iterator[None]:
    """Log the underlying failure and re-raise it as a generic domain error."""

    try:
        yield
    except SQLAlchemyError as exc:
        if _is_timeout(exc):
            LOGGER.warning("Query timed out during %s", operation)
            raise QueryTimeoutError("Query timed out") from exc
        LOGGER.exception("Database failure during %s", operation)
        raise DataLayerError("Internal server error") from exc


__all__ = ["data_layer_errors"]
