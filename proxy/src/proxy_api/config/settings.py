"""Proxy configuration using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import ClassVar, Literal

from pydantic import Field, PositiveFloat, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProxyApiSettings(BaseSettings):
    """Process/runtime settings for the proxy API server."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="PROXY_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1", description="Bind address for the proxy API.")
    port: PositiveInt = Field(default=8090, description="Port for the proxy API.")
    reload: bool = Field(default=False, description="Enable uvicorn auto-reload (dev only).")
    log_level: Literal["critical", "error", "warning", "info", "debug", "trace"] = Field(
        default="info",
        description="Log level for proxy API / uvicorn.",
    )


class ProxySettings(BaseSettings):
    """Validated settings for the query, enrichment and cache layers."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="REGISTRY_PROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    cache_ttl_seconds: PositiveFloat = Field(
        default=300,
        description="Lifetime of the cached default server collection (seconds).",
    )
    cache_cleanup_interval_seconds: PositiveFloat = Field(
        default=600,
        description="Interval of the background sweep evicting expired cache entries.",
    )
    default_page_size: PositiveInt = Field(
        default=20,
        description="Page size used when a request omits limit.",
    )
    max_page_size: PositiveInt = Field(
        default=1000,
        description="Upper bound applied to client supplied limits.",
    )
    collection_size: PositiveInt = Field(
        default=10000,
        description="Number of records loaded into the cached default collection.",
    )
    request_timeout_seconds: PositiveFloat = Field(
        default=30,
        description="Deadline applied to each query request.",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed by the CORS middleware.",
    )
    seed_sample_data: bool = Field(
        default=False,
        description="Insert sample documents at startup when the documents table is empty.",
    )


@lru_cache()
def get_settings() -> ProxySettings:
    """Return memoized proxy settings."""

    return ProxySettings()


@lru_cache()
def get_api_settings() -> ProxyApiSettings:
    """Return memoized API process settings."""

    return ProxyApiSettings()
