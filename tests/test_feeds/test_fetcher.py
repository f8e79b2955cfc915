"""Tests for the single-source fetcher and feed parsing."""

import asyncio
import time
from datetime import datetime, timezone

import httpx
import pytest
import respx

from newsfab.errors import FetchNetworkError, FetchTimeoutError, MalformedFeedError
from newsfab.feeds.deadline import Deadline
from newsfab.feeds.fetcher import SourceFetcher, parse_feed, parse_struct_time
from newsfab.feeds.http_client import CachingHTTPClient
from tests.conftest import make_rss

URL = "https://example.com/feed.xml"

ATOM = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Example</title>
  <link href="https://atom.example.com/"/>
  <subtitle>Updates</subtitle>
  <entry>
    <title>Edited post</title>
    <link href="https://atom.example.com/1"/>
    <id>urn:1</id>
    <published>2024-03-01T08:00:00Z</published>
    <updated>2024-03-03T10:00:00Z</updated>
    <author><name>Ada</name></author>
    <summary>Short summary</summary>
  </entry>
</feed>
"""


class TestParseFeed:
    """Tests for parse_feed."""

    def test_parses_rss(self, zebra_rss, t1):
        feed = parse_feed(URL, zebra_rss)

        assert feed.source == URL
        assert feed.title == "Zebra News"
        assert feed.link == "https://example.com/"
        assert len(feed.entries) == 1
        entry = feed.entries[0]
        assert entry.title == "Stripes are back"
        assert entry.link == "https://zebra.example.com/1"
        assert entry.published == t1
        assert entry.updated is None
        assert entry.timestamp == t1

    def test_parses_atom_with_updated(self):
        feed = parse_feed(URL, ATOM)

        assert feed.title == "Atom Example"
        assert feed.description == "Updates"
        entry = feed.entries[0]
        assert entry.updated == datetime(2024, 3, 3, 10, 0, tzinfo=timezone.utc)
        assert entry.published == datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
        assert entry.timestamp == entry.updated
        assert entry.author == "Ada"
        assert entry.id == "urn:1"

    def test_entry_without_dates(self):
        body = make_rss("Undated", [("no date", "https://u/1", None)])

        entry = parse_feed(URL, body).entries[0]

        assert entry.timestamp is None

    def test_empty_channel_is_valid(self):
        feed = parse_feed(URL, make_rss("Quiet", []))

        assert feed.title == "Quiet"
        assert feed.entries == ()

    @pytest.mark.parametrize(
        "body",
        [b"", b"not a feed at all", b"<html><body><p>Hello</p></body></html>"],
    )
    def test_non_feed_raises_malformed(self, body):
        with pytest.raises(MalformedFeedError):
            parse_feed(URL, body)

    def test_parse_struct_time(self):
        value = time.strptime("2024-03-01 08:00:00", "%Y-%m-%d %H:%M:%S")

        assert parse_struct_time(value) == datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
        assert parse_struct_time(None) is None


class TestSourceFetcher:
    """Tests for SourceFetcher.fetch."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_success(self, alpha_rss):
        respx.get(URL).mock(return_value=httpx.Response(200, content=alpha_rss))

        async with CachingHTTPClient() as client:
            feed = await SourceFetcher(client).fetch(URL, Deadline(5.0))

        assert feed.title == "Alpha Times"

    @pytest.mark.asyncio
    @respx.mock
    async def test_expired_deadline_skips_network(self):
        route = respx.get(URL).mock(return_value=httpx.Response(200))

        async with CachingHTTPClient() as client:
            with pytest.raises(FetchTimeoutError):
                await SourceFetcher(client).fetch(URL, Deadline(0.0))

        assert not route.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_slow_response_times_out(self, alpha_rss):
        async def slow(request):
            await asyncio.sleep(1.0)
            return httpx.Response(200, content=alpha_rss)

        respx.get(URL).mock(side_effect=slow)

        async with CachingHTTPClient() as client:
            start = time.monotonic()
            with pytest.raises(FetchTimeoutError):
                await SourceFetcher(client).fetch(URL, Deadline(0.05))

        assert time.monotonic() - start < 0.5

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_error_is_network_error(self):
        respx.get(URL).mock(return_value=httpx.Response(500))

        async with CachingHTTPClient() as client:
            with pytest.raises(FetchNetworkError):
                await SourceFetcher(client).fetch(URL, Deadline(5.0))

    @pytest.mark.asyncio
    @respx.mock
    async def test_html_page_is_malformed(self):
        respx.get(URL).mock(return_value=httpx.Response(200, content=b"<html><body>Hi</body></html>"))

        async with CachingHTTPClient() as client:
            with pytest.raises(MalformedFeedError):
                await SourceFetcher(client).fetch(URL, Deadline(5.0))
