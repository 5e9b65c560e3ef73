"""Request and error payload models for the proxy API."""

from .engagement import InstallRequest, RatingRequest
from .error import Error

__all__ = ["Error", "InstallRequest", "RatingRequest"]
