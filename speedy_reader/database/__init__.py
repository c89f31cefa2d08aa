"""
Database module - SQLite operations for feeds, articles, summaries and bookmarks.

Uses repository pattern for better separation of concerns.
"""

from .connection import DatabaseConnection
from .models import DBArticle, DBFeed, DBSavedBookmark, DBSummary, NewArticle, NewFeed
from .article_repository import ArticleRepository
from .bookmark_repository import BookmarkRepository
from .feed_repository import FeedRepository
from .summary_repository import SummaryRepository
from .database import Database

__all__ = [
    "Database",
    "DatabaseConnection",
    "DBArticle",
    "DBFeed",
    "DBSavedBookmark",
    "DBSummary",
    "NewArticle",
    "NewFeed",
    "ArticleRepository",
    "BookmarkRepository",
    "FeedRepository",
    "SummaryRepository",
]
