"""Validated client filter for enriched server queries."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from proxy_api.errors import ValidationError

RegistryType = Literal["npm", "pypi", "oci", "mcpb", "nuget", "remote"]
TransportType = Literal["stdio", "sse", "http", "streamable-http"]

REGISTRY_TYPES: tuple[str, ...] = ("npm", "pypi", "oci", "mcpb", "nuget", "remote")
TRANSPORT_TYPES: tuple[str, ...] = ("stdio", "sse", "http", "streamable-http")
MAX_TAG_LENGTH = 50


class ServerFilter(BaseModel):
    """All fields optional; an empty filter places no restriction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    search: Optional[str] = Field(default=None, max_length=200)
    category: Optional[str] = Field(default=None, max_length=100)
    tags: tuple[str, ...] = ()
    min_rating: Optional[float] = Field(default=None, ge=0, le=5)
    min_installs: Optional[int] = Field(default=None, ge=0)
    registry_types: tuple[RegistryType, ...] = ()
    transports: tuple[TransportType, ...] = ()

    @field_validator("search", "category", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        tags = [str(item).strip() for item in value]
        tags = [tag for tag in tags if tag]
        for tag in tags:
            if len(tag) > MAX_TAG_LENGTH:
                raise ValueError(f"tag must be at most {MAX_TAG_LENGTH} characters")
        return tuple(dict.fromkeys(tags))

    @field_validator("registry_types", "transports", mode="before")
    @classmethod
    def _clean_tokens(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        tokens = [str(item).strip().lower() for item in value]
        return tuple(dict.fromkeys(token for token in tokens if token))

    @classmethod
    def build(cls, **values: Any) -> "ServerFilter":
        """Validate raw values, raising the domain :class:`ValidationError`."""

        try:
            return cls(**values)
        except PydanticValidationError as exc:
            problems = [
                f"{'.'.join(str(part) for part in error['loc']) or 'filter'}: {error['msg']}"
                for error in exc.errors()
            ]
            raise ValidationError(
                "Invalid filter: " + "; ".join(problems),
                details={"errors": problems},
            ) from exc

    def is_empty(self) -> bool:
        return self == EMPTY_FILTER


EMPTY_FILTER = ServerFilter()


__all__ = [
    "EMPTY_FILTER",
    "REGISTRY_TYPES",
    "RegistryType",
    "ServerFilter",
    "TRANSPORT_TYPES",
    "TransportType",
]
