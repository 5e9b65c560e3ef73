# coding: utf-8

"""
    Registry Proxy API
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, Field


class RatingRequest(BaseModel):
    """
    Rating submission for one server.
    """  # noqa: E501

    rating: Any = Field(description="Whole number between 1 and 5.")
    user_id: Optional[str] = Field(default=None, alias="userId")
    comment: Optional[str] = None
    source: Optional[str] = None
    timestamp: Optional[str] = None
    __properties: ClassVar[list[str]] = ["rating", "userId", "comment", "source", "timestamp"]

    model_config = {
        "populate_by_name": True,
        "validate_assignment": True,
        "protected_namespaces": (),
    }

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class InstallRequest(BaseModel):
    """
    Installation event for one server.
    """  # noqa: E501

    user_id: Optional[str] = Field(default=None, alias="userId")
    source: Optional[str] = None
    version: Optional[str] = None
    platform: Optional[str] = None
    __properties: ClassVar[list[str]] = ["userId", "source", "version", "platform"]

    model_config = {
        "populate_by_name": True,
        "validate_assignment": True,
        "protected_namespaces": (),
    }

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
