"""
Content Fetcher - Full article text for summarization.

Handles:
- HTTP fetching of the article page with the user's browser cookies
- Readable text extraction using trafilatura (reader-mode)
- Fallback to BeautifulSoup heuristics
- Resolution chain: fetched full text when usable, otherwise the feed body
"""

import asyncio
import logging
import re
from typing import Protocol
from urllib.parse import urlparse

import aiohttp
import trafilatura
from bs4 import BeautifulSoup

from .browser_cookies import FirefoxCookieSource

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"

# Extracted text at or below this length is treated as unusable
MIN_CONTENT_LENGTH = 200


class SessionFetcher(Protocol):
    """Capability: fetch readable page text using local browser credentials."""

    async def fetch_with_local_session(self, url: str) -> str | None:
        ...


def clean_text(text: str) -> str:
    """Trim every line and drop blank ones."""
    lines = (line.strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


class ContentFetcher:
    """Fetches article pages with browser cookies and extracts readable text."""

    def __init__(
        self,
        cookie_source: FirefoxCookieSource | None = None,
        timeout: int = 30,
        connect_timeout: int = 10,
        user_agent: str | None = None,
        min_content_length: int = MIN_CONTENT_LENGTH,
    ):
        self.cookie_source = cookie_source or FirefoxCookieSource()
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.min_content_length = min_content_length
        self.user_agent = user_agent or BROWSER_USER_AGENT

    async def fetch_with_local_session(self, url: str) -> str | None:
        """
        Fetch the page and return its readable text.

        Returns None when the URL is unusable, the server refuses, or the
        extracted text is too short. Network errors propagate to the caller.
        """
        domain = urlparse(url).hostname
        if not domain:
            return None

        # Cookie lookup copies a sqlite file; keep it off the event loop
        cookies = await asyncio.to_thread(self.cookie_source.cookie_header, domain)

        headers = {"User-Agent": self.user_agent}
        if cookies:
            headers["Cookie"] = cookies

        timeout = aiohttp.ClientTimeout(total=self.timeout, connect=self.connect_timeout)
        async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
            async with session.get(url, allow_redirects=True) as resp:
                if resp.status >= 400:
                    logger.debug(f"Failed to fetch {url}: HTTP {resp.status}")
                    return None
                html = await resp.text(errors="replace")

        return self.extract_text(html, url)

    def extract_text(self, html: str, url: str = "") -> str | None:
        """Extract readable text from HTML using trafilatura or BeautifulSoup extraction."""
        text = self._extract_with_trafilatura(html, url)
        if not text or len(text) <= self.min_content_length:
            text = self._extract_with_beautifulsoup(html)

        if len(text) > self.min_content_length:
            return text

        logger.debug(f"Extracted content too short ({len(text)} chars) for {url}")
        return None

    def _extract_with_trafilatura(self, html: str, url: str) -> str | None:
        """Extract main text using trafilatura (Readability-style extraction)."""
        try:
            content = trafilatura.extract(
                html,
                url=url or None,
                output_format="txt",
                include_tables=True,
                favor_recall=True,
            )
        except Exception as e:
            # If trafilatura fails, fall back to BeautifulSoup
            logger.debug(f"trafilatura failed for {url}: {e}")
            return None
        return clean_text(content) if content else None

    def _extract_with_beautifulsoup(self, html: str) -> str:
        """Fallback extraction using BeautifulSoup heuristics."""
        soup = BeautifulSoup(html, "html.parser")

        # Remove unwanted elements
        for tag in soup.find_all([
            "script", "style", "nav", "header", "footer", "aside",
            "noscript", "iframe", "form", "button", "input"
        ]):
            tag.decompose()

        # Try to find article content
        article = (
            soup.find("article") or
            soup.find(class_=re.compile(r"^(article|post|post-content|entry-content|story)$", re.I)) or
            soup.find(attrs={"role": "main"}) or
            soup.find("main") or
            soup.body or
            soup
        )
        return clean_text(article.get_text(separator="\n"))


class ContentResolver:
    """
    Picks the text to summarize for an article.

    Tries the credentialed full-page fetch first; anything short of usable text,
    including any error, falls back to the feed-supplied body.
    """

    def __init__(self, fetcher: SessionFetcher | None, min_content_length: int = MIN_CONTENT_LENGTH):
        self.fetcher = fetcher
        self.min_content_length = min_content_length

    async def resolve(self, url: str, content_text: str | None, content: str | None) -> str:
        fallback = content_text or content or ""
        if self.fetcher is None or not url:
            return fallback

        try:
            text = await self.fetcher.fetch_with_local_session(url)
        except Exception as e:
            logger.debug(f"Full-text fetch failed for {url}, using feed content: {e}")
            return fallback

        if text and len(text) > self.min_content_length:
            return text
        return fallback
