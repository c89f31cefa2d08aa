"""
Background tasks for article summarization.

Summaries are generated off the interactive loop; finished jobs are queued and
drained one per tick. Every job carries a generation number and only the most
recent submission is ever applied, so superseded or orphaned results are
dropped rather than cancelled.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum

from .database import Database
from .database.models import DBArticle, DBSummary
from .fetcher import ContentResolver
from .summarizer import Summarizer, SummaryText

logger = logging.getLogger(__name__)


class SubmitStatus(Enum):
    NO_API_KEY = "no_api_key"
    CACHED = "cached"
    SUBMITTED = "submitted"


@dataclass
class SubmitResult:
    status: SubmitStatus
    summary: DBSummary | None = None


class CompletionOutcome(Enum):
    APPLIED = "applied"      # persisted; belongs to the pending target
    FAILED = "failed"        # backend error for the pending target
    ORPHANED = "orphaned"    # pending target no longer in the article list
    STALE = "stale"          # superseded by a later submission


@dataclass
class Completion:
    outcome: CompletionOutcome
    article_id: int
    summary: DBSummary | None = None
    error: str | None = None


@dataclass
class _JobResult:
    generation: int
    article_id: int
    summary: SummaryText | None = None
    error: str | None = None


@dataclass
class _PendingJob:
    generation: int
    article_id: int


class SummaryDispatcher:
    """Runs summarization jobs and hands results back to the session."""

    def __init__(
        self,
        db: Database,
        summarizer: Summarizer | None,
        resolver: ContentResolver | None = None,
    ):
        self.db = db
        self.summarizer = summarizer
        self.resolver = resolver or ContentResolver(None)
        self._results: asyncio.Queue[_JobResult] = asyncio.Queue()
        self._generation = 0
        self._pending: _PendingJob | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def has_backend(self) -> bool:
        return self.summarizer is not None

    @property
    def pending_article_id(self) -> int | None:
        return self._pending.article_id if self._pending else None

    def submit(self, article: DBArticle, use_cache: bool = True) -> SubmitResult:
        """
        Start summarizing an article unless a cached summary exists.

        The article is marked read as soon as a job is spawned, and that is not
        undone if the job fails. Must be called from the running event loop.
        """
        if self.summarizer is None:
            return SubmitResult(SubmitStatus.NO_API_KEY)

        if use_cache:
            cached = self.db.get_summary(article.id)
            if cached:
                return SubmitResult(SubmitStatus.CACHED, summary=cached)

        self.db.mark_read(article.id)

        self._generation += 1
        self._pending = _PendingJob(self._generation, article.id)

        task = asyncio.create_task(self._execute(
            self._generation, article.id, article.title, article.url,
            article.content_text, article.content,
        ))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.debug(f"Submitted summary job {self._generation} for article {article.id}")
        return SubmitResult(SubmitStatus.SUBMITTED)

    async def _execute(
        self,
        generation: int,
        article_id: int,
        title: str,
        url: str,
        content_text: str | None,
        content: str | None,
    ):
        try:
            text = await self.resolver.resolve(url, content_text, content)
            summary = await self.summarizer.summarize(title, text)
            result = _JobResult(generation, article_id, summary=summary)
        except Exception as e:
            logger.error(f"Failed to generate summary for article {article_id}: {e}")
            result = _JobResult(generation, article_id, error=str(e) or type(e).__name__)
        self._results.put_nowait(result)

    def drain(self, live_article_ids: set[int]) -> Completion | None:
        """
        Take at most one finished job off the queue (never waits).

        Only the latest submission is accepted. Its summary is persisted when
        the article still exists; otherwise the result is dropped.
        """
        try:
            result = self._results.get_nowait()
        except asyncio.QueueEmpty:
            return None

        pending = self._pending
        if pending is None or pending.generation != result.generation:
            logger.debug(f"Discarding stale summary job {result.generation} for article {result.article_id}")
            return Completion(CompletionOutcome.STALE, result.article_id)

        self._pending = None

        if result.article_id not in live_article_ids:
            logger.debug(f"Discarding summary for deleted article {result.article_id}")
            return Completion(CompletionOutcome.ORPHANED, result.article_id)

        if result.error is not None:
            return Completion(CompletionOutcome.FAILED, result.article_id, error=result.error)

        try:
            stored = self.db.save_summary(result.article_id, result.summary.text, result.summary.model)
        except sqlite3.IntegrityError:
            logger.debug(f"Article {result.article_id} vanished from the store, summary dropped")
            return Completion(CompletionOutcome.ORPHANED, result.article_id)
        return Completion(CompletionOutcome.APPLIED, result.article_id, summary=stored)

    async def wait_for_jobs(self):
        """Wait until every spawned job has posted its result."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def shutdown(self):
        """Cancel outstanding jobs."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._pending = None
