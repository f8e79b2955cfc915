"""Feed fetching and aggregation - schemas, cache, fetcher, orchestrator."""

from newsfab.feeds.schemas import (
    MIN_TIMESTAMP,
    Entry,
    Feed,
    Record,
    Snapshot,
    SourceList,
)

__all__ = [
    "MIN_TIMESTAMP",
    "Entry",
    "Feed",
    "Record",
    "Snapshot",
    "SourceList",
]
