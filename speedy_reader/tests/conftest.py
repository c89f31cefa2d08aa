"""
Pytest fixtures for speedy_reader tests.
"""

import asyncio
import os
import sqlite3
import tempfile
from contextlib import closing
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from speedy_reader.database import Database, NewArticle, NewFeed
from speedy_reader.exceptions import FeedNotFoundError
from speedy_reader.feeds import FeedEntry, ParsedFeed, normalize_url
from speedy_reader.providers.base import LLMProvider, LLMResponse
from speedy_reader.services.feed_service import FeedService
from speedy_reader.session import Session
from speedy_reader.summarizer import Summarizer
from speedy_reader.tasks import SummaryDispatcher


class MockProvider(LLMProvider):
    """Mock LLM provider that records calls and returns canned text."""

    def __init__(self, text: str = "A short summary.", error: Exception | None = None):
        self.calls: list[dict] = []
        self.text = text
        self.error = error
        self.release: asyncio.Event | None = None

    @property
    def default_model(self) -> str:
        return "mock-model"

    def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        self.calls.append({
            "user_prompt": user_prompt,
            "system_prompt": system_prompt,
            "model": model,
            "max_tokens": max_tokens,
        })
        if self.error:
            raise self.error
        return LLMResponse(text=self.text, model=model or self.default_model)

    async def complete_async(self, user_prompt, system_prompt=None, model=None, max_tokens=1024):
        # Tests can hold the job open until they have changed session state
        if self.release is not None:
            await self.release.wait()
        return self.complete(user_prompt, system_prompt, model, max_tokens)


class FakeFeedParser:
    """Feed parser stand-in keyed by URL; values are ParsedFeed or an exception."""

    def __init__(self, results: dict | None = None, delay: float = 0.0, discoveries: dict | None = None):
        self.results = results or {}
        self.discoveries = discoveries or {}
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.fetched: list[str] = []

    async def fetch(self, url: str) -> ParsedFeed:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            self.fetched.append(url)
            result = self.results.get(url)
            if isinstance(result, BaseException):
                raise result
            if result is None:
                return ParsedFeed(url=url, title="Empty", description=None, site_url=None)
            return result
        finally:
            self.in_flight -= 1

    async def discover_feed(self, raw_url: str) -> NewFeed:
        url = normalize_url(raw_url)
        if url not in self.discoveries:
            raise FeedNotFoundError(f"Could not find RSS/Atom feed at {url}")
        return self.discoveries[url]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_entry(guid: str, title: str | None = None, age_days: float = 0.0, content: str = "Body text") -> FeedEntry:
    return FeedEntry(
        guid=guid,
        title=title or f"Article {guid}",
        url=f"https://example.com/{guid}",
        author=None,
        content=f"<p>{content}</p>",
        content_text=content,
        published=datetime.now(timezone.utc) - timedelta(days=age_days),
    )


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        yield Path(f.name)
    if os.path.exists(f.name):
        os.unlink(f.name)


@pytest.fixture
def test_db(temp_db_path):
    """Create a test database instance."""
    return Database(temp_db_path)


@pytest.fixture
def feed_id(test_db):
    """A single subscribed feed."""
    return test_db.add_feed(NewFeed(title="Example Feed", url="https://example.com/feed.xml"))


@pytest.fixture
def add_article(test_db, feed_id):
    """Factory inserting an article into the sample feed. Returns its id."""
    def _add(guid: str, title: str | None = None, age_days: float = 0.0, feed: int | None = None) -> int:
        return test_db.articles.upsert(NewArticle(
            feed_id=feed or feed_id,
            guid=guid,
            title=title or f"Article {guid}",
            url=f"https://example.com/{guid}",
            content="<p>Feed body</p>",
            content_text="Feed body",
            published_at=datetime.now(timezone.utc) - timedelta(days=age_days),
        ))
    return _add


@pytest.fixture
def summary_count(test_db, temp_db_path):
    """Count summary rows for an article straight from the database file."""
    def _count(article_id: int) -> int:
        with closing(sqlite3.connect(temp_db_path)) as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM summaries WHERE article_id = ?", (article_id,)
            ).fetchone()[0]
    return _count


@pytest.fixture
def mock_provider():
    return MockProvider()


@pytest.fixture
def summarizer(mock_provider):
    return Summarizer(mock_provider)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def opened_urls():
    return []


@pytest.fixture
def make_session(test_db, summarizer, clock, opened_urls):
    """Factory building a loaded Session over the test database."""
    def _make(summarizer=summarizer, feed_parser=None, bookmarks=None, **kwargs) -> Session:
        dispatcher = SummaryDispatcher(test_db, summarizer)
        feed_service = FeedService(test_db, feed_parser or FakeFeedParser())

        def opener(url):
            opened_urls.append(url)
            return True

        session = Session(
            test_db, feed_service, dispatcher,
            bookmarks=bookmarks, clock=clock, opener=opener, **kwargs,
        )
        session.load()
        return session
    return _make
