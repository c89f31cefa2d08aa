"""
Database models - dataclasses for database entities.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class DBFeed:
    id: int
    title: str
    url: str
    site_url: str | None
    description: str | None
    last_fetched: datetime | None
    created_at: datetime
    updated_at: datetime


@dataclass
class DBArticle:
    id: int
    feed_id: int
    guid: str
    title: str
    url: str
    author: str | None
    content: str | None  # HTML body as supplied by the feed
    content_text: str | None  # Plain-text rendering of content
    published_at: datetime | None
    fetched_at: datetime
    is_read: bool = False
    is_starred: bool = False
    feed_title: str | None = None


@dataclass
class DBSummary:
    id: int
    article_id: int
    content: str
    model_version: str
    generated_at: datetime


@dataclass
class DBSavedBookmark:
    article_id: int
    external_id: int
    tags: list[str] = field(default_factory=list)
    saved_at: datetime | None = None


@dataclass
class NewFeed:
    """A feed discovered or imported but not yet stored."""
    title: str
    url: str
    site_url: str | None = None
    description: str | None = None


@dataclass
class NewArticle:
    """An article parsed from a feed, keyed by (feed_id, guid)."""
    feed_id: int
    guid: str
    title: str
    url: str
    author: str | None = None
    content: str | None = None
    content_text: str | None = None
    published_at: datetime | None = None
