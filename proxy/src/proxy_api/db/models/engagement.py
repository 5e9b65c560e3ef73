"""ORM models for engagement events and their per-document aggregate."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EngagementAggregateRecord(Base):
    """Derived rating/install summary, recomputed from the event tables."""

    __tablename__ = "engagement_aggregate"
    __table_args__ = (
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_engagement_aggregate_rating"),
        Index("ix_engagement_aggregate_rating", "rating", "rating_count"),
    )

    document_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    rating: Mapped[float] = mapped_column(
        Numeric(3, 2, asdecimal=False),
        nullable=False,
        default=0,
    )
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    installation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )


class RatingEventRecord(Base):
    """Latest rating of one user for one document."""

    __tablename__ = "rating_events"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_rating_events_rating"),
        Index("ix_rating_events_user_id", "user_id"),
    )

    document_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )


class InstallEventRecord(Base):
    """Latest install of one user for one document."""

    __tablename__ = "install_events"
    __table_args__ = (
        Index("ix_install_events_user_id", "user_id"),
        Index("ix_install_events_installed_at", "installed_at"),
    )

    document_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    source: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    platform: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    installed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
