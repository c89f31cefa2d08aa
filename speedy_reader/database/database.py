"""
Database facade - provides unified access to all repositories.

The session and services talk to this class; each method delegates to the
repository that owns the entity.
"""

from pathlib import Path

from .connection import DatabaseConnection
from .article_repository import ArticleRepository
from .bookmark_repository import BookmarkRepository
from .feed_repository import FeedRepository
from .summary_repository import SummaryRepository
from .models import DBArticle, DBFeed, DBSummary, NewArticle, NewFeed


class Database:
    """Unified database access facade."""

    RETENTION_DAYS = 7

    def __init__(self, db_path: Path):
        self._connection = DatabaseConnection(db_path)

        # Initialize repositories
        self.articles = ArticleRepository(self._connection)
        self.feeds = FeedRepository(self._connection)
        self.summaries = SummaryRepository(self._connection)
        self.bookmarks = BookmarkRepository(self._connection)

    # ─────────────────────────────────────────────────────────────
    # Feed operations (delegated to FeedRepository)
    # ─────────────────────────────────────────────────────────────

    def add_feed(self, feed: NewFeed) -> int:
        return self.feeds.add(feed)

    def get_feed(self, feed_id: int) -> DBFeed | None:
        return self.feeds.get(feed_id)

    def get_feed_by_url(self, url: str) -> DBFeed | None:
        return self.feeds.get_by_url(url)

    def get_feeds(self) -> list[DBFeed]:
        return self.feeds.get_all()

    def update_feed_fetched(self, feed_id: int):
        return self.feeds.update_fetched(feed_id)

    def delete_feed(self, feed_id: int):
        return self.feeds.delete(feed_id)

    # ─────────────────────────────────────────────────────────────
    # Article operations (delegated to ArticleRepository)
    # ─────────────────────────────────────────────────────────────

    def upsert_articles(self, articles: list[NewArticle]) -> int:
        return self.articles.upsert_many(articles)

    def get_articles(self) -> list[DBArticle]:
        return self.articles.get_all_sorted()

    def mark_read(self, article_id: int, is_read: bool = True):
        return self.articles.mark_read(article_id, is_read)

    def toggle_starred(self, article_id: int) -> bool:
        return self.articles.toggle_starred(article_id)

    def delete_article(self, article_id: int) -> bool:
        return self.articles.delete(article_id)

    def restore_article(self, article: DBArticle) -> bool:
        return self.articles.restore(article)

    def purge_old_articles(self, days: int = RETENTION_DAYS) -> int:
        return self.articles.purge_older_than(days)

    # ─────────────────────────────────────────────────────────────
    # Summary operations (delegated to SummaryRepository)
    # ─────────────────────────────────────────────────────────────

    def get_summary(self, article_id: int) -> DBSummary | None:
        return self.summaries.get(article_id)

    def save_summary(self, article_id: int, content: str, model_version: str) -> DBSummary:
        return self.summaries.save(article_id, content, model_version)

    # ─────────────────────────────────────────────────────────────
    # Bookmark tracking (delegated to BookmarkRepository)
    # ─────────────────────────────────────────────────────────────

    def mark_saved_bookmark(self, article_id: int, external_id: int, tags: list[str]):
        return self.bookmarks.mark_saved(article_id, external_id, tags)

    def is_bookmarked(self, article_id: int) -> bool:
        return self.bookmarks.is_saved(article_id)
