"""
Feed service: business logic for feed management operations.

Handles feed subscription, refresh, and OPML import/export.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

import aiohttp

from ..database import Database
from ..database.models import DBFeed
from ..exceptions import DuplicateFeedError, FeedError
from ..feeds import FeedParser, ParsedFeed, normalize_url
from ..opml import read_opml_file, write_opml_file

logger = logging.getLogger(__name__)

# Maximum feeds fetched at once
MAX_CONCURRENT_FETCHES = 5


@dataclass
class RefreshReport:
    """Outcome of one refresh cycle."""
    refreshed: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)
    articles_written: int = 0
    purged: int = 0

    def describe(self) -> str:
        text = f"Refreshed {len(self.refreshed)} feeds"
        if self.failed:
            text += f", {len(self.failed)} failed"
        return text


@dataclass
class ImportReport:
    """Outcome of an OPML import."""
    added: int = 0
    skipped: int = 0
    refresh: RefreshReport | None = None


class FeedService:
    """Service for feed-related business logic."""

    def __init__(
        self,
        db: Database,
        feed_parser: FeedParser | None = None,
        max_concurrent: int = MAX_CONCURRENT_FETCHES,
        retention_days: int = Database.RETENTION_DAYS,
    ):
        self.db = db
        self.feed_parser = feed_parser or FeedParser()
        self.max_concurrent = max_concurrent
        self.retention_days = retention_days
        self._refresh_task: asyncio.Task | None = None

    # ─────────────────────────────────────────────────────────────
    # Refresh
    # ─────────────────────────────────────────────────────────────

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def schedule_refresh(self) -> asyncio.Task | None:
        """
        Start a background refresh unless one is already running.

        Returns the new task, or None when a refresh is in flight.
        """
        if self.is_refreshing:
            logger.debug("Refresh already in progress, ignoring trigger")
            return None
        self._refresh_task = asyncio.create_task(self.refresh_all())
        return self._refresh_task

    async def _fetch_one(self, semaphore: asyncio.Semaphore, feed: DBFeed) -> ParsedFeed:
        async with semaphore:
            return await self.feed_parser.fetch(feed.url)

    async def refresh_all(self) -> RefreshReport:
        """
        Fetch every feed (at most max_concurrent at a time) and store the results.

        A failing feed is logged and skipped; its last_fetched is left alone so
        the next refresh retries it. Articles past the retention age are purged
        once the fan-out is finished.
        """
        feeds = self.db.get_feeds()
        semaphore = asyncio.Semaphore(self.max_concurrent)
        results = await asyncio.gather(
            *(self._fetch_one(semaphore, feed) for feed in feeds),
            return_exceptions=True,
        )

        report = RefreshReport()
        for feed, result in zip(feeds, results):
            if isinstance(result, (FeedError, aiohttp.ClientError, asyncio.TimeoutError)):
                logger.warning(f"Failed to refresh feed {feed.url}: {result!r}")
                report.failed[feed.id] = str(result) or type(result).__name__
                continue
            if isinstance(result, BaseException):
                # Unexpected errors still stay isolated to their own feed
                logger.error(f"Unexpected error refreshing feed {feed.url}: {result!r}")
                report.failed[feed.id] = str(result) or type(result).__name__
                continue

            report.articles_written += self.db.upsert_articles(result.articles_for(feed.id))
            self.db.update_feed_fetched(feed.id)
            report.refreshed.append(feed.id)

        report.purged = self.db.purge_old_articles(self.retention_days)
        logger.info(
            f"{report.describe()}: {report.articles_written} articles stored, "
            f"{report.purged} purged"
        )
        return report

    # ─────────────────────────────────────────────────────────────
    # Feed Management
    # ─────────────────────────────────────────────────────────────

    async def add_feed(self, raw_url: str) -> DBFeed:
        """
        Discover and subscribe to the feed behind a user supplied address.

        Raises:
            FeedNotFoundError: If no feed could be discovered
            DuplicateFeedError: If the feed is already subscribed
        """
        url = normalize_url(raw_url)
        if self.db.get_feed_by_url(url):
            raise DuplicateFeedError(url)

        new_feed = await self.feed_parser.discover_feed(url)
        if self.db.get_feed_by_url(new_feed.url):
            raise DuplicateFeedError(new_feed.url)

        feed_id = self.db.add_feed(new_feed)
        logger.info(f"Added feed {new_feed.url}")
        return self.db.get_feed(feed_id)

    def delete_feed(self, feed_id: int):
        """Unsubscribe; the feed's articles and their summaries go with it."""
        self.db.delete_feed(feed_id)

    # ─────────────────────────────────────────────────────────────
    # OPML Import/Export
    # ─────────────────────────────────────────────────────────────

    async def import_opml(self, path: Path, refresh: bool = True) -> ImportReport:
        """
        Subscribe to every feed listed in an OPML file, then refresh.

        Feeds already subscribed are skipped.

        Raises:
            OpmlError: If the file cannot be read or parsed
        """
        document = read_opml_file(path)

        report = ImportReport()
        for opml_feed in document.feeds:
            try:
                self.db.add_feed(opml_feed.to_new_feed())
                report.added += 1
            except DuplicateFeedError:
                report.skipped += 1

        logger.info(f"Imported {report.added} feeds from {path} ({report.skipped} already present)")
        if refresh:
            report.refresh = await self.refresh_all()
        return report

    def export_opml(self, path: Path) -> int:
        """
        Write all subscriptions to an OPML file. Returns the number exported.

        Raises:
            OpmlError: If the file cannot be written
        """
        feeds = self.db.get_feeds()
        write_opml_file(path, feeds)
        logger.info(f"Exported {len(feeds)} feeds to {path}")
        return len(feeds)
