"""
Aggregation of fetched feeds into one ordered Snapshot.

Ordering rules:
- Feeds: title ascending, ties broken by source URL.
- Records: effective timestamp descending (updated, else published),
  ties broken by feed title, entry title, source URL and entry link,
  all ascending. Entries without any timestamp sort last.

The result depends only on the feeds' content, never on the order in
which fetches completed.
"""

from collections.abc import Iterable

from newsfab.feeds.schemas import Feed, Record, Snapshot


def _feed_key(feed: Feed) -> tuple[str, str]:
    return (feed.title, feed.source)


def _record_tiebreak_key(record: Record) -> tuple[str, str, str, str]:
    return (record.feed.title, record.entry.title, record.feed.source, record.entry.link)


def aggregate(feeds: Iterable[Feed]) -> Snapshot:
    """
    Build a Snapshot from a set of feeds.

    Args:
        feeds: Parsed feeds, in any order

    Returns:
        Immutable, fully sorted Snapshot
    """
    sorted_feeds = sorted(feeds, key=_feed_key)

    records = [
        Record(feed=feed, entry=entry, timestamp=entry.timestamp)
        for feed in sorted_feeds
        for entry in feed.entries
    ]
    # Two stable passes: tie-break ascending, then timestamp descending.
    records.sort(key=_record_tiebreak_key)
    records.sort(key=lambda r: r.sort_timestamp, reverse=True)

    return Snapshot(feeds=tuple(sorted_feeds), records=tuple(records))
