"""Database model package."""

from .document import DocumentRecord
from .engagement import EngagementAggregateRecord, InstallEventRecord, RatingEventRecord

__all__ = [
    "DocumentRecord",
    "EngagementAggregateRecord",
    "InstallEventRecord",
    "RatingEventRecord",
]
