"""
Fetch orchestrator - fans a source list out to concurrent fetch tasks.

All tasks share one Deadline. The orchestrator joins on "every task
finished" or "deadline expired", whichever comes first; stragglers are
cancelled and reported as timeouts. Each task returns its own result
and results are merged once, at the join, in source-list order.
"""

import asyncio
import time

import structlog

from newsfab.errors import FetchError, FetchTimeoutError
from newsfab.feeds.deadline import Deadline
from newsfab.feeds.fetcher import SourceFetcher
from newsfab.feeds.schemas import Feed, SourceList
from newsfab.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0


class FetchOrchestrator:
    """
    Fetches every source of a cycle concurrently.

    A failing or timed-out source is logged and excluded; fetch_all
    itself never fails and may return an empty list.

    Usage:
        orchestrator = FetchOrchestrator(SourceFetcher(client), timeout=10.0)
        feeds = await orchestrator.fetch_all(sources)
    """

    def __init__(self, fetcher: SourceFetcher, timeout: float = DEFAULT_FETCH_TIMEOUT):
        """
        Args:
            fetcher: Per-source fetcher
            timeout: Default overall deadline in seconds
        """
        self._fetcher = fetcher
        self._timeout = timeout
        self._metrics = get_metrics()

    async def fetch_all(
        self,
        sources: SourceList,
        timeout: float | None = None,
        deadline: Deadline | None = None,
    ) -> list[Feed]:
        """
        Fetch all sources under one shared deadline.

        Args:
            sources: Feed URLs
            timeout: Overall deadline, measured from now (default from init)
            deadline: Pre-built deadline; takes precedence over timeout so the
                caller can shorten it while the fetch is in flight

        Returns:
            Successfully parsed feeds, in source-list order
        """
        if deadline is None:
            deadline = Deadline(self._timeout if timeout is None else timeout)

        if not sources:
            return []

        start = time.monotonic()
        tasks = [
            asyncio.create_task(self._fetch_one(source, deadline), name=f"fetch:{source}")
            for source in sources
        ]
        expiry = asyncio.create_task(deadline.wait(), name="fetch:deadline")

        pending: set[asyncio.Task] = set(tasks)
        try:
            while pending and not expiry.done():
                _, pending = await asyncio.wait(
                    pending | {expiry},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                pending.discard(expiry)
        finally:
            expiry.cancel()
            for task in pending:
                task.cancel()
            results = await asyncio.gather(*tasks, return_exceptions=True)

        feeds: list[Feed] = []
        for source, result in zip(sources, results):
            if isinstance(result, Feed):
                feeds.append(result)
            elif isinstance(result, asyncio.CancelledError):
                self._record_failure(source, FetchTimeoutError("deadline expired", source=source))
            elif isinstance(result, BaseException) and not isinstance(result, FetchError):
                logger.error(
                    "Unexpected fetch failure",
                    source=source,
                    error_type=type(result).__name__,
                    error=str(result),
                )
                self._metrics.record_fetch("error")

        elapsed = time.monotonic() - start
        logger.info(
            "Fetch completed",
            sources=len(sources),
            feeds=len(feeds),
            failed=len(sources) - len(feeds),
            elapsed_seconds=round(elapsed, 2),
        )
        return feeds

    async def _fetch_one(self, source: str, deadline: Deadline) -> Feed | None:
        """Fetch one source; FetchError is logged and turned into None."""
        start = time.monotonic()
        try:
            feed = await self._fetcher.fetch(source, deadline)
        except FetchError as e:
            self._record_failure(source, e)
            return None

        self._metrics.record_fetch("success", latency=time.monotonic() - start)
        return feed

    def _record_failure(self, source: str, error: FetchError) -> None:
        outcome = "timeout" if isinstance(error, FetchTimeoutError) else "error"
        logger.warning(
            "Source excluded from cycle",
            source=source,
            error_type=type(error).__name__,
            error=str(error),
        )
        self._metrics.record_fetch(outcome)
