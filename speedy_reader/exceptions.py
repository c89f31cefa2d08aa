"""
Exception types shared across the reader.

Transient service failures and per-feed problems are reported to the user as
status text; only store initialisation failures are fatal at startup.
"""


class ReaderError(Exception):
    """Base class for all reader errors."""


class ConfigError(ReaderError):
    """Config file exists but could not be read or parsed."""


class StoreError(ReaderError):
    """Persistent store could not be opened or initialised."""


class FeedError(ReaderError):
    """Base class for feed fetching and discovery problems."""


class FeedParseError(FeedError):
    """Fetched payload is not a usable RSS/Atom document."""


class FeedNotFoundError(FeedError):
    """No feed could be discovered for a user supplied address."""


class DuplicateFeedError(FeedError):
    """A feed with the same URL is already subscribed."""

    def __init__(self, url: str):
        super().__init__(f"Feed already exists: {url}")
        self.url = url


class SummarizationError(ReaderError):
    """Summarization backend returned an error or could not be reached."""


class BookmarkError(ReaderError):
    """Bookmark service rejected a request or could not be reached."""


class OpmlError(ReaderError):
    """OPML file could not be read or is not a valid OPML document."""
