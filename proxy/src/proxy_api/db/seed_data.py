"""Seed the documents table with sample server descriptors."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from .models import DocumentRecord
from .session import run_in_session

LOGGER = logging.getLogger(__name__)

SAMPLE_SERVERS: list[dict[str, Any]] = [
    {
        "name": "io.github.modelcontextprotocol/filesystem",
        "version": "1.2.0",
        "age_days": 120,
        "value": {
            "description": "Secure file operations with configurable access controls.",
            "category": "files",
            "tags": ["files", "local"],
            "packages": [
                {
                    "registryType": "npm",
                    "identifier": "@modelcontextprotocol/server-filesystem",
                    "version": "1.2.0",
                    "transport": {"type": "stdio"},
                }
            ],
        },
    },
    {
        "name": "io.github.example/weather",
        "version": "0.4.1",
        "age_days": 40,
        "value": {
            "description": "Weather forecasts and alerts.",
            "category": "data",
            "tags": ["weather", "api"],
            "packages": [
                {
                    "registryType": "pypi",
                    "identifier": "mcp-weather",
                    "version": "0.4.1",
                    "transport": {"type": "stdio"},
                }
            ],
        },
    },
    {
        "name": "com.example/search-gateway",
        "version": "2.0.0",
        "age_days": 3,
        "value": {
            "description": "Hosted web search gateway.",
            "category": "search",
            "tags": ["search", "web"],
            "remotes": [{"type": "streamable-http", "url": "https://search.example.com/mcp"}],
        },
    },
]


def seed_sample_documents(session_factory: Optional[sessionmaker[Session]] = None) -> int:
    """Insert the sample servers when the documents table is empty; returns rows added."""

    def _seed(session: Session) -> int:
        existing = session.execute(select(func.count()).select_from(DocumentRecord)).scalar_one()
        if existing:
            return 0
        now = datetime.now(timezone.utc)
        for entry in SAMPLE_SERVERS:
            published_at = now - timedelta(days=entry["age_days"])
            session.add(
                DocumentRecord(
                    name=entry["name"],
                    version=entry["version"],
                    value={"name": entry["name"], "version": entry["version"], **entry["value"]},
                    published_at=published_at,
                    updated_at=published_at,
                    is_latest=True,
                )
            )
        return len(SAMPLE_SERVERS)

    added = run_in_session(_seed, session_factory=session_factory)
    if added:
        LOGGER.info("Seeded %d sample server documents", added)
    return added


__all__ = ["seed_sample_documents", "SAMPLE_SERVERS"]
