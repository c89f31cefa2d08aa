"""
Bookmark repository - tracks which articles were saved to the bookmark service.
"""

import json

from .connection import DatabaseConnection
from .converters import row_to_saved_bookmark, to_db_time, utc_now
from .models import DBSavedBookmark


class BookmarkRepository:
    """Repository for saved-bookmark tracking records."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def mark_saved(self, article_id: int, external_id: int, tags: list[str]):
        """Record that an article was bookmarked (replaces any earlier record)."""
        with self._db.conn() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO saved_bookmarks (article_id, external_id, tags, saved_at)
                   VALUES (?, ?, ?, ?)""",
                (article_id, external_id, json.dumps(tags), to_db_time(utc_now()))
            )

    def is_saved(self, article_id: int) -> bool:
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT 1 FROM saved_bookmarks WHERE article_id = ?", (article_id,)
            ).fetchone()
            return row is not None

    def get(self, article_id: int) -> DBSavedBookmark | None:
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM saved_bookmarks WHERE article_id = ?", (article_id,)
            ).fetchone()
            return row_to_saved_bookmark(row) if row else None
