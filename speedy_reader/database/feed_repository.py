"""
Feed repository - CRUD operations for feeds.
"""

import sqlite3

from ..exceptions import DuplicateFeedError
from .connection import DatabaseConnection
from .converters import row_to_feed, to_db_time, utc_now
from .models import DBFeed, NewFeed


class FeedRepository:
    """Repository for feed operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add(self, feed: NewFeed) -> int:
        """
        Add a new feed. Returns feed ID.

        Raises:
            DuplicateFeedError: If a feed with the same URL exists
        """
        now = to_db_time(utc_now())
        with self._db.conn() as conn:
            try:
                cursor = conn.execute(
                    """INSERT INTO feeds (title, url, site_url, description, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (feed.title, feed.url, feed.site_url, feed.description, now, now)
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateFeedError(feed.url) from e
            return cursor.lastrowid

    def get(self, feed_id: int) -> DBFeed | None:
        """Get single feed by ID."""
        with self._db.conn() as conn:
            row = conn.execute("SELECT * FROM feeds WHERE id = ?", (feed_id,)).fetchone()
            return row_to_feed(row) if row else None

    def get_by_url(self, url: str) -> DBFeed | None:
        """Get feed by its (unique) URL."""
        with self._db.conn() as conn:
            row = conn.execute("SELECT * FROM feeds WHERE url = ?", (url,)).fetchone()
            return row_to_feed(row) if row else None

    def get_all(self) -> list[DBFeed]:
        """Get all feeds ordered by title."""
        with self._db.conn() as conn:
            rows = conn.execute("SELECT * FROM feeds ORDER BY title COLLATE NOCASE").fetchall()
            return [row_to_feed(row) for row in rows]

    def update_fetched(self, feed_id: int):
        """Advance the feed's last fetched timestamp."""
        now = to_db_time(utc_now())
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE feeds SET last_fetched = ?, updated_at = ? WHERE id = ?",
                (now, now, feed_id)
            )

    def delete(self, feed_id: int):
        """Delete a feed; its articles, summaries and bookmarks cascade."""
        with self._db.conn() as conn:
            conn.execute("DELETE FROM feeds WHERE id = ?", (feed_id,))
