"""Pytest fixtures for newsfab tests."""

from datetime import datetime, timezone

import pytest

from newsfab.config.settings import Settings, get_settings
from newsfab.feeds.schemas import Entry, Feed


def make_rss(title: str, items: list[tuple[str, str, str | None]]) -> bytes:
    """
    Build a small RSS 2.0 document.

    Args:
        title: Channel title
        items: (title, link, pubDate or None) tuples
    """
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0"><channel>',
        f"<title>{title}</title>",
        "<link>https://example.com/</link>",
        "<description>Test feed</description>",
    ]
    for item_title, link, pub_date in items:
        parts.append("<item>")
        parts.append(f"<title>{item_title}</title>")
        parts.append(f"<link>{link}</link>")
        if pub_date:
            parts.append(f"<pubDate>{pub_date}</pubDate>")
        parts.append("</item>")
    parts.append("</channel></rss>")
    return "\n".join(parts).encode("utf-8")


def make_feed(
    title: str,
    source: str | None = None,
    entries: list[tuple[str, datetime | None]] | None = None,
) -> Feed:
    """Build a Feed with published-only entries."""
    source = source or f"https://{title.lower().replace(' ', '-')}.example.com/feed"
    return Feed(
        source=source,
        title=title,
        link=source,
        entries=tuple(
            Entry(title=entry_title, link=f"{source}/{i}", published=published)
            for i, (entry_title, published) in enumerate(entries or [])
        ),
    )


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make environment overrides in one test invisible to the next."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        fetch_timeout_seconds=2.0,
        refresh_interval_seconds=0.05,
        shutdown_grace_seconds=0.05,
        cache_enabled=False,
    )


@pytest.fixture
def t1() -> datetime:
    return datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def t2() -> datetime:
    return datetime(2024, 3, 2, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def zebra_rss() -> bytes:
    return make_rss(
        "Zebra News",
        [("Stripes are back", "https://zebra.example.com/1", "Fri, 01 Mar 2024 08:00:00 GMT")],
    )


@pytest.fixture
def alpha_rss() -> bytes:
    return make_rss(
        "Alpha Times",
        [("First letter wins", "https://alpha.example.com/1", "Sat, 02 Mar 2024 09:30:00 GMT")],
    )
