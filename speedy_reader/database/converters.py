"""
Database row converters - convert SQLite rows to dataclasses.

All timestamps are stored as second-precision ISO-8601 strings in UTC so they
compare correctly as text inside SQL.
"""

import json
import sqlite3
from datetime import datetime, timezone

from .models import DBArticle, DBFeed, DBSavedBookmark, DBSummary


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_db_time(value: datetime) -> str:
    """Serialize a datetime for storage. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def from_db_time(value: str | None) -> datetime | None:
    """Parse a stored timestamp, tolerating SQLite's 'YYYY-MM-DD HH:MM:SS' form."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def row_to_feed(row: sqlite3.Row) -> DBFeed:
    """Convert a database row to a DBFeed."""
    return DBFeed(
        id=row["id"],
        title=row["title"],
        url=row["url"],
        site_url=row["site_url"],
        description=row["description"],
        last_fetched=from_db_time(row["last_fetched"]),
        created_at=from_db_time(row["created_at"]) or utc_now(),
        updated_at=from_db_time(row["updated_at"]) or utc_now(),
    )


def row_to_article(row: sqlite3.Row) -> DBArticle:
    """Convert a database row to a DBArticle."""
    # feed_title only exists on joined queries
    try:
        feed_title = row["feed_title"]
    except (IndexError, KeyError):
        feed_title = None

    return DBArticle(
        id=row["id"],
        feed_id=row["feed_id"],
        guid=row["guid"],
        title=row["title"],
        url=row["url"],
        author=row["author"],
        content=row["content"],
        content_text=row["content_text"],
        published_at=from_db_time(row["published_at"]),
        fetched_at=from_db_time(row["fetched_at"]) or utc_now(),
        is_read=bool(row["is_read"]),
        is_starred=bool(row["is_starred"]),
        feed_title=feed_title,
    )


def row_to_summary(row: sqlite3.Row) -> DBSummary:
    """Convert a database row to a DBSummary."""
    return DBSummary(
        id=row["id"],
        article_id=row["article_id"],
        content=row["content"],
        model_version=row["model_version"],
        generated_at=from_db_time(row["generated_at"]) or utc_now(),
    )


def row_to_saved_bookmark(row: sqlite3.Row) -> DBSavedBookmark:
    """Convert a database row to a DBSavedBookmark."""
    tags: list[str] = []
    if row["tags"]:
        try:
            tags = json.loads(row["tags"])
        except json.JSONDecodeError:
            pass

    return DBSavedBookmark(
        article_id=row["article_id"],
        external_id=row["external_id"],
        tags=tags,
        saved_at=from_db_time(row["saved_at"]),
    )
