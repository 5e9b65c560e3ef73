"""Create documents, engagement aggregate and event tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("version", sa.String(length=64), nullable=False),
        sa.Column(
            "value",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_latest", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("name", "version"),
    )
    op.create_index(
        "uq_documents_latest_name",
        "documents",
        ["name"],
        unique=True,
        postgresql_where=sa.text("is_latest"),
        sqlite_where=sa.text("is_latest = 1"),
    )
    op.create_index("ix_documents_published_at", "documents", ["published_at"])

    op.create_table(
        "engagement_aggregate",
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("rating", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("installation_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("document_id"),
        sa.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_engagement_aggregate_rating"),
    )
    op.create_index(
        "ix_engagement_aggregate_rating",
        "engagement_aggregate",
        ["rating", "rating_count"],
    )

    op.create_table(
        "rating_events",
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("document_id", "user_id"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_rating_events_rating"),
    )
    op.create_index("ix_rating_events_user_id", "rating_events", ["user_id"])

    op.create_table(
        "install_events",
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("source", sa.String(length=100), nullable=True),
        sa.Column("version", sa.String(length=50), nullable=True),
        sa.Column("platform", sa.String(length=50), nullable=True),
        sa.Column("installed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("document_id", "user_id"),
    )
    op.create_index("ix_install_events_user_id", "install_events", ["user_id"])
    op.create_index("ix_install_events_installed_at", "install_events", ["installed_at"])


def downgrade() -> None:
    op.drop_index("ix_install_events_installed_at", table_name="install_events")
    op.drop_index("ix_install_events_user_id", table_name="install_events")
    op.drop_table("install_events")
    op.drop_index("ix_rating_events_user_id", table_name="rating_events")
    op.drop_table("rating_events")
    op.drop_index("ix_engagement_aggregate_rating", table_name="engagement_aggregate")
    op.drop_table("engagement_aggregate")
    op.drop_index("ix_documents_published_at", table_name="documents")
    op.drop_index("uq_documents_latest_name", table_name="documents")
    op.drop_table("documents")
