"""Service layer."""

from .feed_service import FeedService, ImportReport, RefreshReport

__all__ = ["FeedService", "ImportReport", "RefreshReport"]
