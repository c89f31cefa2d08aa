"""
Summary repository - one cached summary per article.
"""

from .connection import DatabaseConnection
from .converters import row_to_summary, to_db_time, utc_now
from .models import DBSummary


class SummaryRepository:
    """Repository for summary operations."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def get(self, article_id: int) -> DBSummary | None:
        """Get the cached summary for an article."""
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM summaries WHERE article_id = ?", (article_id,)
            ).fetchone()
            return row_to_summary(row) if row else None

    def save(self, article_id: int, content: str, model_version: str) -> DBSummary:
        """Insert or overwrite the article's summary. Regeneration never keeps history."""
        with self._db.conn() as conn:
            conn.execute(
                """INSERT INTO summaries (article_id, content, model_version, generated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(article_id) DO UPDATE SET
                       content = excluded.content,
                       model_version = excluded.model_version,
                       generated_at = excluded.generated_at""",
                (article_id, content, model_version, to_db_time(utc_now()))
            )
            row = conn.execute(
                "SELECT * FROM summaries WHERE article_id = ?", (article_id,)
            ).fetchone()
            return row_to_summary(row)
