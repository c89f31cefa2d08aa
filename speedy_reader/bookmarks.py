"""
Bookmark service client (Raindrop.io).

Saves articles as bookmarks, into a named collection when one exists.
"""

import asyncio
import json
import logging

import aiohttp

from .exceptions import BookmarkError

logger = logging.getLogger(__name__)

RAINDROP_API_URL = "https://api.raindrop.io/rest/v1"

_UNRESOLVED = object()


def merge_tags(typed: str, defaults: list[str]) -> list[str]:
    """Combine default tags with comma separated user input, dropping duplicates."""
    tags = []
    for tag in [*defaults, *typed.split(",")]:
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class RaindropClient:
    """
    Raindrop.io REST client.

    The destination collection id is looked up once per client and reused for
    every later save; a failed lookup means "save to Unsorted" for the rest of
    the client's lifetime.
    """

    def __init__(self, token: str, collection_name: str = "News Links", timeout: int = 30,
                 base_url: str = RAINDROP_API_URL):
        self.token = token
        self.collection_name = collection_name
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self._collection_id = _UNRESOLVED
        self._collection_lock = asyncio.Lock()

    async def _request(self, method: str, path: str, payload: dict | None = None) -> tuple[int, str]:
        """Send an authenticated request. Returns (status, body text)."""
        headers = {"Authorization": f"Bearer {self.token}"}
        timeout = aiohttp.ClientTimeout(total=self.timeout, connect=10)

        async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
            async with session.request(method, f"{self.base_url}{path}", json=payload) as resp:
                return resp.status, await resp.text()

    async def collection_id(self) -> int | None:
        """Resolve (once) the id of the configured collection."""
        async with self._collection_lock:
            if self._collection_id is _UNRESOLVED:
                self._collection_id = await self._lookup_collection()
            return self._collection_id

    async def _lookup_collection(self) -> int | None:
        try:
            status, body = await self._request("GET", "/collections")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to fetch collections, saving to Unsorted: {e}")
            return None

        if status >= 300:
            logger.warning(f"Failed to fetch collections (HTTP {status}), saving to Unsorted")
            return None

        try:
            items = json.loads(body).get("items", [])
        except (ValueError, AttributeError):
            logger.warning("Unexpected collections response, saving to Unsorted")
            return None

        for item in items:
            if item.get("title") == self.collection_name:
                return item.get("_id")

        logger.warning(f"Collection '{self.collection_name}' not found, saving to Unsorted")
        return None

    async def save_bookmark(
        self,
        url: str,
        title: str | None = None,
        excerpt: str | None = None,
        note: str | None = None,
        tags: list[str] | None = None,
    ) -> int:
        """
        Create a bookmark. Returns the new bookmark's id.

        Raises:
            BookmarkError: On transport failure or a non-2xx response (raw body included)
        """
        payload = {
            "link": url,
            "title": title,
            "excerpt": excerpt,
            "tags": tags or [],
            "pleaseParse": {},
        }
        if note:
            payload["note"] = note

        collection = await self.collection_id()
        if collection is not None:
            payload["collection"] = {"$id": collection}

        try:
            status, body = await self._request("POST", "/raindrop", payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BookmarkError(f"Raindrop request failed: {e}") from e

        if status >= 300:
            raise BookmarkError(f"API error: {body}")

        try:
            item = json.loads(body).get("item") or {}
        except (ValueError, AttributeError) as e:
            raise BookmarkError(f"Invalid response from Raindrop: {body}") from e

        if "_id" not in item:
            raise BookmarkError("No item returned from API")
        return item["_id"]
