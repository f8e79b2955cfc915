"""Tests for the caching HTTP transport."""

import time

import httpx
import pytest
import respx

from newsfab.errors import FetchNetworkError, FetchTimeoutError
from newsfab.feeds.cache import CachedResponse, MemoryResponseCache, cache_key
from newsfab.feeds.http_client import CachePolicy, CachingHTTPClient

URL = "https://example.com/feed.xml"


class TestCachePolicy:
    """Tests for CachePolicy."""

    def test_max_age_sets_expiry(self):
        policy = CachePolicy()

        expires = policy.expires_at(httpx.Headers({"Cache-Control": "public, max-age=120"}), now=1000.0)

        assert expires == 1120.0

    def test_no_cache_forces_revalidation(self):
        policy = CachePolicy()

        assert policy.expires_at(httpx.Headers({"Cache-Control": "no-cache, max-age=120"}), now=0) is None

    def test_missing_header_has_no_expiry(self):
        assert CachePolicy().expires_at(httpx.Headers(), now=0) is None

    def test_no_store_is_not_storable(self):
        policy = CachePolicy()

        assert policy.is_storable(httpx.Headers({"Cache-Control": "no-store"})) is False
        assert policy.is_storable(httpx.Headers({"Cache-Control": "max-age=5"})) is True


class TestCachingHTTPClient:
    """Tests for CachingHTTPClient."""

    @pytest.mark.asyncio
    async def test_requires_context_manager(self):
        client = CachingHTTPClient()

        with pytest.raises(RuntimeError):
            await client.get(URL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_success(self):
        respx.get(URL).mock(return_value=httpx.Response(200, content=b"<rss/>"))

        async with CachingHTTPClient() as client:
            response = await client.get(URL)

        assert response.body == b"<rss/>"
        assert response.from_cache is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_sends_user_agent(self):
        route = respx.get(URL).mock(return_value=httpx.Response(200, content=b""))

        async with CachingHTTPClient(user_agent="newsfab-test/1.0") as client:
            await client.get(URL)

        assert route.calls.last.request.headers["User-Agent"] == "newsfab-test/1.0"

    @pytest.mark.asyncio
    @respx.mock
    async def test_stores_validators(self):
        cache = MemoryResponseCache()
        respx.get(URL).mock(
            return_value=httpx.Response(
                200,
                content=b"<rss/>",
                headers={"ETag": '"abc"', "Last-Modified": "Fri, 01 Mar 2024 08:00:00 GMT"},
            )
        )

        async with CachingHTTPClient(cache=cache) as client:
            await client.get(URL)

        stored = await cache.get(cache_key(URL))
        assert stored.etag == '"abc"'
        assert stored.last_modified == "Fri, 01 Mar 2024 08:00:00 GMT"
        assert stored.body == b"<rss/>"

    @pytest.mark.asyncio
    @respx.mock
    async def test_does_not_store_without_validators_or_lifetime(self):
        cache = MemoryResponseCache()
        respx.get(URL).mock(return_value=httpx.Response(200, content=b"<rss/>"))

        async with CachingHTTPClient(cache=cache) as client:
            await client.get(URL)

        assert len(cache) == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_revalidates_and_serves_cached_body_on_304(self):
        cache = MemoryResponseCache()
        await cache.put(cache_key(URL), CachedResponse(url=URL, body=b"cached", etag='"abc"'))
        route = respx.get(URL).mock(return_value=httpx.Response(304))

        async with CachingHTTPClient(cache=cache) as client:
            response = await client.get(URL)

        assert route.calls.last.request.headers["If-None-Match"] == '"abc"'
        assert response.body == b"cached"
        assert response.revalidated is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_fresh_entry_served_without_request(self):
        cache = MemoryResponseCache()
        await cache.put(
            cache_key(URL),
            CachedResponse(url=URL, body=b"fresh", expires_at=time.time() + 60),
        )
        route = respx.get(URL).mock(return_value=httpx.Response(200, content=b"network"))

        async with CachingHTTPClient(cache=cache) as client:
            response = await client.get(URL)

        assert response.body == b"fresh"
        assert response.from_cache is True
        assert not route.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_store_evicts_entry(self):
        cache = MemoryResponseCache()
        await cache.put(cache_key(URL), CachedResponse(url=URL, body=b"old", etag='"1"'))
        respx.get(URL).mock(
            return_value=httpx.Response(200, content=b"new", headers={"Cache-Control": "no-store"})
        )

        async with CachingHTTPClient(cache=cache) as client:
            response = await client.get(URL)

        assert response.body == b"new"
        assert await cache.get(cache_key(URL)) is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_raises_network_error(self):
        respx.get(URL).mock(return_value=httpx.Response(404))

        async with CachingHTTPClient() as client:
            with pytest.raises(FetchNetworkError) as exc_info:
                await client.get(URL)

        assert exc_info.value.status_code == 404
        assert exc_info.value.source == URL

    @pytest.mark.asyncio
    @respx.mock
    async def test_connect_error_raises_network_error(self):
        respx.get(URL).mock(side_effect=httpx.ConnectError("connection refused"))

        async with CachingHTTPClient() as client:
            with pytest.raises(FetchNetworkError):
                await client.get(URL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_raises_timeout_error(self):
        respx.get(URL).mock(side_effect=httpx.ReadTimeout("read timed out"))

        async with CachingHTTPClient() as client:
            with pytest.raises(FetchTimeoutError):
                await client.get(URL)
