"""
HTTP transport with a shared response cache.

Provides:
- CachePolicy: Freshness and storability rules from response headers
- FetchedResponse: Body plus how it was obtained (network, revalidated, cache)
- CachingHTTPClient: Async client performing conditional GETs through a
  ResponseCache

This layer separates HTTP concerns (caching, validators, status handling)
from feed parsing in the source fetcher. There is no retry:
a failed source is left out of the current cycle.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any

import httpx

from newsfab.errors import FetchNetworkError, FetchTimeoutError
from newsfab.feeds.cache import CachedResponse, ResponseCache, cache_key

logger = logging.getLogger(__name__)

HTTP_OK_RANGE = range(200, 300)
HTTP_NOT_MODIFIED = 304

_MAX_AGE_RE = re.compile(r"(?:^|,)\s*(?:s-)?max-age\s*=\s*\"?(\d+)\"?", re.IGNORECASE)


@dataclass
class CachePolicy:
    """
    Decides whether and for how long a response may be reused.

    Only `Cache-Control` is consulted: `no-store` prevents caching,
    `no-cache` forces revalidation, `max-age` sets the freshness lifetime.
    """

    @staticmethod
    def directives(headers: httpx.Headers) -> str:
        return headers.get("cache-control", "").lower()

    def is_storable(self, headers: httpx.Headers) -> bool:
        return "no-store" not in self.directives(headers)

    def expires_at(self, headers: httpx.Headers, now: float) -> float | None:
        """
        Absolute expiry time, or None when the response must be revalidated.

        Args:
            headers: Response headers
            now: Current wall-clock time (epoch seconds)
        """
        directives = self.directives(headers)
        if "no-cache" in directives:
            return None
        match = _MAX_AGE_RE.search(directives)
        if match is None:
            return None
        max_age = int(match.group(1))
        if max_age <= 0:
            return None
        return now + max_age


@dataclass(frozen=True)
class FetchedResponse:
    """A response body and where it came from."""

    url: str
    body: bytes
    status_code: int
    from_cache: bool = False
    revalidated: bool = False


class CachingHTTPClient:
    """
    Async HTTP client with conditional requests backed by a ResponseCache.

    Features:
    - Serves fresh cached responses without a network round-trip
    - Revalidates stale responses with If-None-Match / If-Modified-Since
    - Stores successful responses with their validators
    - Maps transport failures to FetchNetworkError / FetchTimeoutError
    - Context manager for proper resource cleanup

    Example:
        async with CachingHTTPClient(cache=DiskResponseCache(".cache")) as client:
            response = await client.get("https://example.com/feed.xml")
    """

    def __init__(
        self,
        cache: ResponseCache | None = None,
        user_agent: str = "newsfab/0.1.0",
        max_connections: int = 20,
        policy: CachePolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            cache: Shared response cache. No caching if None.
            user_agent: User-Agent header sent with every request
            max_connections: Connection pool limit
            policy: Cache freshness rules. Uses defaults if None.
            transport: Optional httpx transport (tests)
        """
        self.cache = cache
        self.policy = policy or CachePolicy()
        self._user_agent = user_agent
        self._max_connections = max_connections
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "CachingHTTPClient":
        """Enter async context manager, create client."""
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self._user_agent},
            follow_redirects=True,
            limits=httpx.Limits(max_connections=self._max_connections),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, close client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, url: str, timeout: float | None = None) -> FetchedResponse:
        """
        Fetch a URL, consulting and updating the cache.

        Args:
            url: Request URL
            timeout: Per-request transport timeout in seconds

        Returns:
            FetchedResponse on success (2xx, or 304 with a cached body)

        Raises:
            FetchTimeoutError: Transport timed out
            FetchNetworkError: Connection failure or unusable status code
        """
        if not self._client:
            raise RuntimeError("CachingHTTPClient must be used as async context manager")

        key = cache_key(url)
        cached = await self.cache.get(key) if self.cache else None

        if cached is not None and cached.is_fresh():
            logger.debug(f"Cache hit for {url}")
            return FetchedResponse(url=url, body=cached.body, status_code=200, from_cache=True)

        headers = self._conditional_headers(cached)

        try:
            response = await self._client.get(url, headers=headers, timeout=timeout)
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"request to {url} timed out", source=url) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchNetworkError(f"request to {url} failed: {e}", source=url) from e

        if response.status_code == HTTP_NOT_MODIFIED and cached is not None:
            logger.debug(f"{url} not modified since last fetch")
            await self._store(key, url, cached.body, response.headers, previous=cached)
            return FetchedResponse(
                url=url,
                body=cached.body,
                status_code=response.status_code,
                from_cache=True,
                revalidated=True,
            )

        if response.status_code not in HTTP_OK_RANGE:
            raise FetchNetworkError(
                f"http error: {response.status_code} {response.reason_phrase}",
                source=url,
                status_code=response.status_code,
            )

        body = response.content
        await self._store(key, url, body, response.headers)
        return FetchedResponse(url=url, body=body, status_code=response.status_code)

    def _conditional_headers(self, cached: CachedResponse | None) -> dict[str, str]:
        """Validators from a stale cached response."""
        headers: dict[str, str] = {}
        if cached is None:
            return headers
        if cached.etag:
            headers["If-None-Match"] = cached.etag
        if cached.last_modified:
            headers["If-Modified-Since"] = cached.last_modified
        return headers

    async def _store(
        self,
        key: str,
        url: str,
        body: bytes,
        headers: httpx.Headers,
        previous: CachedResponse | None = None,
    ) -> None:
        """Write a response to the cache. Cache failures never fail the fetch."""
        if self.cache is None:
            return

        if not self.policy.is_storable(headers):
            await self.cache.delete(key)
            return

        now = time.time()
        entry = CachedResponse(
            url=url,
            body=body,
            etag=headers.get("etag") or (previous.etag if previous else None),
            last_modified=headers.get("last-modified")
            or (previous.last_modified if previous else None),
            expires_at=self.policy.expires_at(headers, now),
            stored_at=now,
        )
        if not entry.has_validators and entry.expires_at is None:
            return

        try:
            await self.cache.put(key, entry)
        except OSError as e:
            logger.warning(f"Failed to cache response for {url}: {e}")
