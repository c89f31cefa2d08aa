"""
Article repository - CRUD operations for articles.
"""

import sqlite3
from datetime import timedelta

from .connection import DatabaseConnection
from .converters import row_to_article, to_db_time, utc_now
from .models import DBArticle, NewArticle


_SELECT_WITH_FEED = """
    SELECT a.*, f.title AS feed_title
    FROM articles a
    JOIN feeds f ON a.feed_id = f.id
"""


class ArticleRepository:
    """Repository for article operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def _upsert(self, conn: sqlite3.Connection, article: NewArticle) -> int | None:
        tombstoned = conn.execute(
            "SELECT 1 FROM deleted_articles WHERE feed_id = ? AND guid = ?",
            (article.feed_id, article.guid)
        ).fetchone()
        if tombstoned:
            return None

        # Natural-key merge: id, fetched_at and read/star flags survive re-fetch
        conn.execute(
            """INSERT INTO articles
               (feed_id, guid, title, url, author, content, content_text, published_at, fetched_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(feed_id, guid) DO UPDATE SET
                   title = excluded.title,
                   url = excluded.url,
                   author = excluded.author,
                   content = excluded.content,
                   content_text = excluded.content_text,
                   published_at = excluded.published_at""",
            (article.feed_id, article.guid, article.title, article.url, article.author,
             article.content, article.content_text,
             to_db_time(article.published_at) if article.published_at else None,
             to_db_time(utc_now()))
        )
        row = conn.execute(
            "SELECT id FROM articles WHERE feed_id = ? AND guid = ?",
            (article.feed_id, article.guid)
        ).fetchone()
        return row["id"]

    def upsert(self, article: NewArticle) -> int | None:
        """Insert or update by (feed_id, guid). Returns article ID, or None if deleted by the user."""
        with self._db.conn() as conn:
            return self._upsert(conn, article)

    def upsert_many(self, articles: list[NewArticle]) -> int:
        """Upsert a batch in one transaction. Returns number of rows written."""
        written = 0
        with self._db.conn() as conn:
            for article in articles:
                if self._upsert(conn, article) is not None:
                    written += 1
        return written

    def get(self, article_id: int) -> DBArticle | None:
        """Get single article by ID."""
        with self._db.conn() as conn:
            row = conn.execute(
                _SELECT_WITH_FEED + " WHERE a.id = ?", (article_id,)
            ).fetchone()
            return row_to_article(row) if row else None

    def get_all_sorted(self) -> list[DBArticle]:
        """Get every article, newest first (undated articles by fetch time, last)."""
        with self._db.conn() as conn:
            rows = conn.execute(
                _SELECT_WITH_FEED
                + " ORDER BY a.published_at IS NULL, a.published_at DESC, a.fetched_at DESC, a.id DESC"
            ).fetchall()
            return [row_to_article(row) for row in rows]

    def count(self) -> int:
        with self._db.conn() as conn:
            return conn.execute("SELECT COUNT(*) AS cnt FROM articles").fetchone()["cnt"]

    def mark_read(self, article_id: int, is_read: bool = True):
        """Mark article as read/unread."""
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE articles SET is_read = ? WHERE id = ?",
                (int(is_read), article_id)
            )

    def toggle_starred(self, article_id: int) -> bool:
        """Toggle starred status. Returns new status."""
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE articles SET is_starred = NOT is_starred WHERE id = ?", (article_id,)
            )
            row = conn.execute(
                "SELECT is_starred FROM articles WHERE id = ?", (article_id,)
            ).fetchone()
            return bool(row["is_starred"]) if row else False

    def delete(self, article_id: int) -> bool:
        """
        Delete an article and tombstone its natural key.

        Summaries and bookmark records cascade. Returns False if no such article.
        """
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT feed_id, guid FROM articles WHERE id = ?", (article_id,)
            ).fetchone()
            if not row:
                return False
            conn.execute(
                "INSERT OR REPLACE INTO deleted_articles (feed_id, guid, deleted_at) VALUES (?, ?, ?)",
                (row["feed_id"], row["guid"], to_db_time(utc_now()))
            )
            conn.execute("DELETE FROM articles WHERE id = ?", (article_id,))
            return True

    def restore(self, article: DBArticle) -> bool:
        """
        Re-insert a previously deleted article with its original ID and flags.

        Returns False if its feed no longer exists or the key is taken.
        """
        with self._db.conn() as conn:
            try:
                conn.execute(
                    "DELETE FROM deleted_articles WHERE feed_id = ? AND guid = ?",
                    (article.feed_id, article.guid)
                )
                conn.execute(
                    """INSERT INTO articles
                       (id, feed_id, guid, title, url, author, content, content_text,
                        published_at, fetched_at, is_read, is_starred)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (article.id, article.feed_id, article.guid, article.title, article.url,
                     article.author, article.content, article.content_text,
                     to_db_time(article.published_at) if article.published_at else None,
                     to_db_time(article.fetched_at),
                     int(article.is_read), int(article.is_starred))
                )
            except sqlite3.IntegrityError:
                return False
            return True

    def purge_older_than(self, days: int) -> int:
        """
        Delete articles (and tombstones) older than the given age. Returns count deleted.

        Age is taken from published_at, or fetched_at for undated articles, and
        applies regardless of read or starred state.
        """
        cutoff = to_db_time(utc_now() - timedelta(days=days))
        with self._db.conn() as conn:
            cursor = conn.execute(
                "DELETE FROM articles WHERE COALESCE(published_at, fetched_at) < ?",
                (cutoff,)
            )
            conn.execute("DELETE FROM deleted_articles WHERE deleted_at < ?", (cutoff,))
            return cursor.rowcount
