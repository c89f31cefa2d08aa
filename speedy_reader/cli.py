"""
Command line entry point.

    speedy-reader                  interactive reader
    speedy-reader --import FILE    subscribe to the feeds in an OPML file, then exit
    speedy-reader --refresh        refresh all feeds, then exit
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from . import __version__
from .bookmarks import RaindropClient
from .config import Config, data_dir
from .database import Database
from .exceptions import ConfigError, StoreError
from .fetcher import ContentFetcher, ContentResolver
from .logging_config import setup_logging
from .services.feed_service import FeedService
from .session import Session
from .summarizer import Summarizer
from .tasks import SummaryDispatcher

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speedy-reader",
        description="Terminal RSS reader with AI summaries.",
    )
    parser.add_argument("--import", dest="import_path", metavar="PATH", type=Path,
                        help="import feeds from an OPML file and exit")
    parser.add_argument("--refresh", action="store_true",
                        help="refresh all feeds and exit")
    parser.add_argument("--config", type=Path, default=None,
                        help="path to config.toml")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def import_feeds(feed_service: FeedService, path: Path):
    report = await feed_service.import_opml(path)
    print(f"Imported {report.added} feeds from {path} ({report.skipped} already subscribed)")
    if report.refresh:
        print(report.refresh.describe())


async def refresh_feeds(feed_service: FeedService):
    report = await feed_service.refresh_all()
    print(f"{report.describe()}, {report.articles_written} articles updated, {report.purged} purged")
    for feed_id, error in report.failed.items():
        feed = feed_service.db.get_feed(feed_id)
        print(f"  failed: {feed.url if feed else feed_id}: {error}", file=sys.stderr)


async def run_reader(config: Config, db: Database, feed_service: FeedService):
    from .tui import run_interactive

    summarizer = Summarizer.from_config(config)
    dispatcher = SummaryDispatcher(db, summarizer, ContentResolver(ContentFetcher()))
    bookmarks = None
    if config.has_bookmarks:
        bookmarks = RaindropClient(config.raindrop_token, collection_name=config.bookmark_collection)

    session = Session(
        db,
        feed_service,
        dispatcher,
        bookmarks=bookmarks,
        default_tags=config.default_tags,
        refresh_interval_minutes=config.refresh_interval_minutes,
    )
    await run_interactive(session)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    interactive = args.import_path is None and not args.refresh

    try:
        config = Config.load(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(data_dir(), level=config.log_level, verbose=args.verbose, console=not interactive)

    try:
        db = Database(config.db_path)
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    feed_service = FeedService(db)

    if args.import_path is not None:
        asyncio.run(import_feeds(feed_service, args.import_path))
        return 0

    if args.refresh:
        asyncio.run(refresh_feeds(feed_service))
        return 0

    try:
        asyncio.run(run_reader(config, db, feed_service))
    except Exception as e:
        # The terminal is restored by now; report and exit normally
        logger.exception("Reader stopped on error")
        print(f"Error: {e}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
