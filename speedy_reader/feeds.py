"""
Feed Parser - Fetch and parse RSS/Atom feeds.

Handles:
- RSS 2.0 and Atom 1.0 formats (via feedparser)
- Feed autodiscovery from HTML pages
- URL normalization for user supplied addresses
"""

import asyncio
import hashlib
import html as html_lib
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.parse import urljoin

import aiohttp
import feedparser
from bs4 import BeautifulSoup

from .database.models import NewArticle, NewFeed
from .exceptions import FeedNotFoundError, FeedParseError

USER_AGENT = "speedy-reader/1.0"

# Auto-discovery link tags, tried in this order over the whole document
_LINK_REL_FIRST = re.compile(
    r"""<link[^>]*rel=["']alternate["'][^>]*type=["']application/(?:rss|atom)\+xml["'][^>]*href=["']([^"']+)["']""",
    re.IGNORECASE,
)
_LINK_TYPE_FIRST = re.compile(
    r"""<link[^>]*type=["']application/(?:rss|atom)\+xml["'][^>]*href=["']([^"']+)["']""",
    re.IGNORECASE,
)
_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")


@dataclass
class FeedEntry:
    """Represents a single item/entry from a feed."""
    guid: str
    title: str
    url: str
    author: str | None
    content: str | None
    content_text: str | None
    published: datetime | None


@dataclass
class ParsedFeed:
    """Represents a parsed feed."""
    url: str
    title: str
    description: str | None
    site_url: str | None
    entries: list[FeedEntry] = field(default_factory=list)

    def to_new_feed(self) -> NewFeed:
        return NewFeed(
            title=self.title,
            url=self.url,
            site_url=self.site_url,
            description=self.description,
        )

    def articles_for(self, feed_id: int) -> list[NewArticle]:
        """Map entries to storable articles for the given feed."""
        return [
            NewArticle(
                feed_id=feed_id,
                guid=entry.guid,
                title=entry.title,
                url=entry.url,
                author=entry.author,
                content=entry.content,
                content_text=entry.content_text,
                published_at=entry.published,
            )
            for entry in self.entries
        ]


@dataclass
class FetchedDocument:
    """Raw HTTP response body plus the post-redirect URL."""
    url: str
    content_type: str
    body: bytes
    charset: str | None = None

    def text(self) -> str:
        return self.body.decode(self.charset or "utf-8", errors="replace")

    def looks_like_html(self) -> bool:
        head = self.body.lstrip()[:5].lower()
        return "html" in self.content_type.lower() or head.startswith(b"<!") or head.startswith(b"<html")


def normalize_url(raw: str) -> str:
    """Turn user input into an absolute URL, defaulting to https."""
    url = raw.strip()
    if not url:
        raise FeedNotFoundError("No URL given")
    if not _SCHEME.match(url):
        url = "https://" + url.lstrip("/")
    return url


def html_to_text(markup: str) -> str:
    """Render an HTML fragment as plain text, one block per line."""
    text = BeautifulSoup(markup, "html.parser").get_text(separator="\n")
    lines = (line.strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def _struct_to_datetime(value) -> datetime | None:
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


class FeedParser:
    """Fetches and parses RSS/Atom feeds."""

    def __init__(self, timeout: int = 30, connect_timeout: int = 10, user_agent: str | None = None):
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.user_agent = user_agent or USER_AGENT

    async def _get(self, url: str) -> FetchedDocument:
        """HTTP GET following redirects. Raises aiohttp.ClientError on non-2xx."""
        headers = {"User-Agent": self.user_agent}
        timeout = aiohttp.ClientTimeout(total=self.timeout, connect=self.connect_timeout)

        async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
            async with session.get(url, allow_redirects=True) as resp:
                resp.raise_for_status()
                body = await resp.read()
                return FetchedDocument(
                    url=str(resp.url),
                    content_type=resp.headers.get("Content-Type", ""),
                    body=body,
                    charset=resp.charset,
                )

    async def fetch(self, url: str) -> ParsedFeed:
        """
        Fetch and parse a feed URL.

        Raises:
            aiohttp.ClientError / asyncio.TimeoutError: On network failure
            FeedParseError: If the payload is not a feed
        """
        document = await self._get(url)
        return self.parse(url, document.body)

    def parse(self, url: str, content: bytes | str) -> ParsedFeed:
        """Parse feed content using feedparser."""
        parsed = feedparser.parse(content)

        if not parsed.version and not parsed.entries:
            reason = parsed.get("bozo_exception") or "not an RSS/Atom document"
            raise FeedParseError(f"Failed to parse feed {url}: {reason}")

        return ParsedFeed(
            url=url,
            title=parsed.feed.get("title") or "Untitled Feed",
            description=parsed.feed.get("subtitle") or parsed.feed.get("description"),
            site_url=parsed.feed.get("link"),
            entries=[self._parse_entry(entry) for entry in parsed.entries],
        )

    def _parse_entry(self, entry) -> FeedEntry:
        # Prefer full content over summary
        content = None
        if entry.get("content"):
            content = entry.content[0].get("value")
        if not content:
            content = entry.get("summary") or entry.get("description")

        item_url = entry.get("link", "")
        if not item_url:
            for link in entry.get("links", []):
                if link.get("rel") == "alternate" or link.get("type") == "text/html":
                    item_url = link.get("href", "")
                    break

        published = None
        if entry.get("published_parsed"):
            published = _struct_to_datetime(entry.published_parsed)
        elif entry.get("updated_parsed"):
            published = _struct_to_datetime(entry.updated_parsed)

        title = entry.get("title") or "Untitled"
        guid = entry.get("id") or item_url
        if not guid:
            guid = hashlib.sha256(f"{title}|{entry.get('published', '')}".encode()).hexdigest()[:32]

        return FeedEntry(
            guid=guid,
            title=title,
            url=item_url,
            author=entry.get("author"),
            content=content,
            content_text=html_to_text(content) if content else None,
            published=published,
        )

    async def discover_feed(self, raw_url: str) -> NewFeed:
        """
        Resolve a user supplied address to a feed.

        A URL that already serves a feed is used as-is; an HTML page is scanned for
        an auto-discovery link which is then fetched and parsed.

        Raises:
            FeedNotFoundError: If no feed could be found at any stage
        """
        url = normalize_url(raw_url)

        try:
            document = await self._get(url)
            parsed = feedparser.parse(document.body)
            if parsed.version:
                return self.parse(document.url, document.body).to_new_feed()

            if document.looks_like_html():
                feed_url = self.find_feed_link(document.text(), document.url)
                if feed_url:
                    feed_document = await self._get(feed_url)
                    if feedparser.parse(feed_document.body).version:
                        return self.parse(feed_url, feed_document.body).to_new_feed()
        except (aiohttp.ClientError, asyncio.TimeoutError, FeedParseError) as e:
            raise FeedNotFoundError(f"Could not find RSS/Atom feed at {url}: {e}") from e

        raise FeedNotFoundError(f"Could not find RSS/Atom feed at {url}")

    def find_feed_link(self, html: str, base_url: str) -> str | None:
        """Return the first auto-discovery href (rel-first tags win), absolutized."""
        match = _LINK_REL_FIRST.search(html) or _LINK_TYPE_FIRST.search(html)
        if not match:
            return None
        href = html_lib.unescape(match.group(1).strip())
        return urljoin(base_url, href)
