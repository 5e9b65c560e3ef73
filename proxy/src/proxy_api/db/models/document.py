"""ORM model for registry server documents."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRecord(Base):
    """One published version of a server descriptor.

    Rows are written by the registry (admin handlers and the upstream sync
    job); the proxy only reads them. Only one row per name carries
    ``is_latest``.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index(
            "uq_documents_latest_name",
            "name",
            unique=True,
            postgresql_where=text("is_latest"),
            sqlite_where=text("is_latest = 1"),
        ),
        Index("ix_documents_published_at", "published_at"),
    )

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    version: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
    )
    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    is_latest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
