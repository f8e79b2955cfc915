"""
Data models for fetched feeds and the aggregated snapshot.

Everything here is immutable: feeds are produced fresh each cycle,
flattened into records by the aggregator, handed to the renderer
as one Snapshot and then discarded.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

# Ordered sequence of feed URLs. Replaced wholesale on reload.
SourceList = tuple[str, ...]

# Sort position for entries carrying neither an updated nor a published
# timestamp: after every timestamped entry.
MIN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Entry:
    """One item from one feed."""

    title: str
    link: str
    updated: datetime | None = None
    published: datetime | None = None
    summary: str = ""
    author: str = ""
    id: str = ""

    @property
    def timestamp(self) -> datetime | None:
        """Effective timestamp: updated, else published, else None."""
        if self.updated is not None:
            return self.updated
        return self.published


@dataclass(frozen=True)
class Feed:
    """A parsed feed and its entries, in document order."""

    source: str
    title: str
    link: str = ""
    description: str = ""
    entries: tuple[Entry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Record:
    """A (feed, entry) pair with the entry's effective timestamp."""

    feed: Feed
    entry: Entry
    timestamp: datetime | None = None

    @property
    def sort_timestamp(self) -> datetime:
        return self.timestamp if self.timestamp is not None else MIN_TIMESTAMP


@dataclass(frozen=True)
class Snapshot:
    """
    Result of one aggregation pass.

    Attributes:
        feeds: Feeds sorted by title ascending
        records: Records sorted by effective timestamp, newest first
    """

    feeds: tuple[Feed, ...] = ()
    records: tuple[Record, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.feeds

    @property
    def entry_count(self) -> int:
        return len(self.records)
