"""Helpers to apply Alembic migrations programmatically."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

from .session import DATABASE_URL, normalize_database_url


def upgrade_database(database_url: str | None = None) -> None:
    """Run Alembic migrations up to the latest revision."""

    proxy_dir = Path(__file__).resolve().parents[3]
    alembic_cfg = Config(str(proxy_dir / "alembic.ini"))
    # Prevent Alembic from overriding the application's logging configuration.
    alembic_cfg.attributes["configure_logger"] = False
    alembic_cfg.set_main_option("script_location", str(proxy_dir / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", normalize_database_url(database_url or DATABASE_URL))
    command.upgrade(alembic_cfg, "head")


__all__ = ["upgrade_database"]
