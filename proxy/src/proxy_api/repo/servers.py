"""Repository executing enriched server query plans."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from proxy_api.query.dialects import SqlDialect
from proxy_api.query.plan import QueryPlan
from proxy_api.domain.enrichment import EnrichedServer, enrich_row


class ServerRepository:
    def __init__(self, dialect: SqlDialect, *, statement_timeout_ms: Optional[int] = None) -> None:
        self._dialect = dialect
        self._statement_timeout_ms = statement_timeout_ms

    @property
    def dialect(self) -> SqlDialect:
        return self._dialect

    def _apply_timeout(self, session: Session) -> None:
        if self._dialect.name != "postgresql" or not self._statement_timeout_ms:
            return
        # Transaction scoped; reset when the session commits or rolls back.
        session.execute(
            text("SELECT set_config('statement_timeout', :timeout, true)"),
            {"timeout": str(int(self._statement_timeout_ms))},
        )

    def _execute(self, plan: QueryPlan, session: Session):
        self._apply_timeout(session)
        statement, binds = plan.statement()
        return session.execute(statement, binds)

    def fetch_page(self, plan: QueryPlan, *, session: Session) -> tuple[list[EnrichedServer], Optional[int]]:
        """Rows of a paged plan and the windowed total (``None`` when the page is empty)."""

        records: list[EnrichedServer] = []
        total: Optional[int] = None
        for row in self._execute(plan, session).mappings():
            records.append(enrich_row(row))
            total = int(row["total_count"])
        return records, total

    def fetch_records(self, plan: QueryPlan, *, session: Session) -> list[EnrichedServer]:
        return [enrich_row(row) for row in self._execute(plan, session).mappings()]

    def fetch_one(self, plan: QueryPlan, *, session: Session) -> Optional[EnrichedServer]:
        row = self._execute(plan, session).mappings().first()
        if row is None:
            return None
        return enrich_row(row)

    def fetch_count(self, plan: QueryPlan, *, session: Session) -> int:
        return int(self._execute(plan, session).scalar_one() or 0)

    def fetch_summary(self, plan: QueryPlan, *, session: Session) -> dict[str, Any]:
        row = self._execute(plan, session).mappings().one()
        return dict(row)


__all__ = ["ServerRepository"]
