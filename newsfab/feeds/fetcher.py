"""
Source fetcher - retrieves and parses a single feed.

Handles:
- Deadline enforcement for the whole request
- RSS/Atom/JSON Feed parsing via feedparser
- Timestamp normalization to timezone-aware UTC
"""

import asyncio
import calendar
import logging
import time
from datetime import datetime, timezone
from typing import Any

import feedparser

from newsfab.errors import FetchTimeoutError, MalformedFeedError
from newsfab.feeds.deadline import Deadline
from newsfab.feeds.http_client import CachingHTTPClient
from newsfab.feeds.schemas import Entry, Feed

logger = logging.getLogger(__name__)


def parse_struct_time(value: time.struct_time | None) -> datetime | None:
    """Convert a feedparser UTC struct_time to an aware datetime."""
    if not value:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        return None


def _text(mapping: Any, key: str) -> str:
    value = mapping.get(key)
    return value.strip() if isinstance(value, str) else ""


def parse_feed(source: str, body: bytes) -> Feed:
    """
    Parse a response body into a Feed.

    A bozo (not well-formed) document is still accepted as long as
    feedparser recovered a feed version or at least one entry.

    Raises:
        MalformedFeedError: If the body holds no usable feed structure
    """
    parsed = feedparser.parse(body)

    if not parsed.get("version") and not parsed.get("entries"):
        reason = parsed.get("bozo_exception") or "no feed found"
        raise MalformedFeedError(f"{source}: {reason}", source=source)

    meta = parsed.get("feed", {})
    entries = tuple(_transform_entry(raw) for raw in parsed.get("entries", []))

    return Feed(
        source=source,
        title=_text(meta, "title"),
        link=_text(meta, "link"),
        description=_text(meta, "subtitle") or _text(meta, "description"),
        entries=entries,
    )


def _transform_entry(raw: Any) -> Entry:
    """Convert a feedparser entry to an Entry."""
    return Entry(
        title=_text(raw, "title"),
        link=_text(raw, "link"),
        updated=parse_struct_time(raw.get("updated_parsed")),
        published=parse_struct_time(raw.get("published_parsed")),
        summary=_text(raw, "summary"),
        author=_text(raw, "author"),
        id=_text(raw, "id"),
    )


class SourceFetcher:
    """
    Fetches one source within a deadline.

    Safe to call concurrently for many sources; the only shared state
    is the HTTP client and its response cache.
    """

    def __init__(self, client: CachingHTTPClient):
        self._client = client

    async def fetch(self, source: str, deadline: Deadline) -> Feed:
        """
        Fetch and parse one feed.

        Args:
            source: Feed URL
            deadline: Shared cycle deadline

        Returns:
            Parsed Feed

        Raises:
            FetchTimeoutError: Deadline already passed or expired mid-request
            FetchNetworkError: Transport failure or bad status
            MalformedFeedError: Body is not a feed
        """
        remaining = deadline.remaining()
        if remaining <= 0:
            raise FetchTimeoutError(f"deadline passed before fetching {source}", source=source)

        try:
            response = await asyncio.wait_for(
                self._client.get(source, timeout=remaining),
                timeout=remaining,
            )
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(f"deadline expired fetching {source}", source=source) from e

        feed = parse_feed(source, response.body)
        logger.debug(
            f"Fetched {len(feed.entries)} entries from {source}"
            f"{' (cached)' if response.from_cache else ''}"
        )
        return feed
