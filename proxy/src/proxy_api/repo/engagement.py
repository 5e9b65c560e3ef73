"""Repository for engagement events and the derived per-document aggregate."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from proxy_api.db.models import (
    DocumentRecord,
    EngagementAggregateRecord,
    InstallEventRecord,
    RatingEventRecord,
)

REVIEW_ORDERINGS = {
    "newest": (RatingEventRecord.created_at.desc(), RatingEventRecord.user_id.asc()),
    "oldest": (RatingEventRecord.created_at.asc(), RatingEventRecord.user_id.asc()),
    "rating_high": (RatingEventRecord.rating.desc(), RatingEventRecord.created_at.desc()),
    "rating_low": (RatingEventRecord.rating.asc(), RatingEventRecord.created_at.desc()),
}


def _insert_for(session: Session):
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert
    if dialect_name == "sqlite":
        return sqlite.insert
    raise ValueError(f"Upserts are not supported on '{dialect_name}'.")


class EngagementRepository:
    def latest_document_exists(self, document_id: str, *, session: Session) -> bool:
        stmt = (
            select(DocumentRecord.name)
            .where(DocumentRecord.name == document_id, DocumentRecord.is_latest.is_(True))
            .limit(1)
        )
        return session.execute(stmt).first() is not None

    def lock_aggregate(self, document_id: str, *, now: datetime, session: Session) -> EngagementAggregateRecord:
        """Make sure the aggregate row exists and hold its row lock for the transaction."""

        insert = _insert_for(session)
        session.execute(
            insert(EngagementAggregateRecord)
            .values(
                document_id=document_id,
                rating=0,
                rating_count=0,
                installation_count=0,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=[EngagementAggregateRecord.document_id])
        )
        stmt = (
            select(EngagementAggregateRecord)
            .where(EngagementAggregateRecord.document_id == document_id)
            .with_for_update()
        )
        return session.execute(stmt).scalars().one()

    def upsert_rating(
        self,
        *,
        document_id: str,
        user_id: str,
        rating: int,
        comment: Optional[str],
        now: datetime,
        session: Session,
    ) -> None:
        insert = _insert_for(session)
        stmt = insert(RatingEventRecord).values(
            document_id=document_id,
            user_id=user_id,
            rating=rating,
            comment=comment,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[RatingEventRecord.document_id, RatingEventRecord.user_id],
            set_={
                "rating": stmt.excluded.rating,
                "comment": stmt.excluded.comment,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        session.execute(stmt)

    def upsert_install(
        self,
        *,
        document_id: str,
        user_id: str,
        source: Optional[str],
        version: Optional[str],
        platform: Optional[str],
        now: datetime,
        session: Session,
    ) -> None:
        insert = _insert_for(session)
        stmt = insert(InstallEventRecord).values(
            document_id=document_id,
            user_id=user_id,
            source=source,
            version=version,
            platform=platform,
            installed_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[InstallEventRecord.document_id, InstallEventRecord.user_id],
            set_={
                "source": stmt.excluded.source,
                "version": stmt.excluded.version,
                "platform": stmt.excluded.platform,
                "installed_at": stmt.excluded.installed_at,
            },
        )
        session.execute(stmt)

    def recompute_ratings(self, document_id: str, *, now: datetime, session: Session) -> None:
        average, count = session.execute(
            select(func.avg(RatingEventRecord.rating), func.count()).where(
                RatingEventRecord.document_id == document_id
            )
        ).one()
        count = int(count or 0)
        rating = round(float(average), 2) if count else 0.0
        session.execute(
            update(EngagementAggregateRecord)
            .where(EngagementAggregateRecord.document_id == document_id)
            .values(rating=rating, rating_count=count, updated_at=now)
        )

    def recompute_installs(self, document_id: str, *, now: datetime, session: Session) -> None:
        count = session.execute(
            select(func.count(func.distinct(InstallEventRecord.user_id))).where(
                InstallEventRecord.document_id == document_id
            )
        ).scalar_one()
        session.execute(
            update(EngagementAggregateRecord)
            .where(EngagementAggregateRecord.document_id == document_id)
            .values(installation_count=int(count or 0), updated_at=now)
        )

    def get_aggregate(self, document_id: str, *, session: Session) -> Optional[EngagementAggregateRecord]:
        return session.get(EngagementAggregateRecord, document_id, populate_existing=True)

    def list_reviews(
        self,
        document_id: str,
        *,
        limit: int,
        offset: int,
        sort: str,
        session: Session,
    ) -> tuple[list[RatingEventRecord], int]:
        total = session.execute(
            select(func.count()).where(RatingEventRecord.document_id == document_id)
        ).scalar_one()
        stmt = (
            select(RatingEventRecord)
            .where(RatingEventRecord.document_id == document_id)
            .order_by(*REVIEW_ORDERINGS[sort])
            .limit(limit)
            .offset(offset)
        )
        return list(session.execute(stmt).scalars().all()), int(total or 0)

    def get_rating(self, document_id: str, user_id: str, *, session: Session) -> Optional[RatingEventRecord]:
        return session.get(RatingEventRecord, (document_id, user_id))


__all__ = ["EngagementRepository", "REVIEW_ORDERINGS"]
