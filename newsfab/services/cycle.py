"""
Cycle runner - one full fetch, aggregate, render, publish pass.

Fetch failures only shrink the snapshot. Render and publish failures
end the cycle with CycleError, which the scheduler logs before carrying
on with its normal cadence. An all-failed fetch still renders and
publishes an empty snapshot.
"""

import time
from dataclasses import dataclass
from pathlib import Path

import structlog

from newsfab.errors import CycleError, PublishError, RenderError
from newsfab.feeds.aggregator import aggregate
from newsfab.feeds.deadline import Deadline
from newsfab.feeds.orchestrator import FetchOrchestrator
from newsfab.feeds.schemas import SourceList
from newsfab.observability.metrics import get_metrics
from newsfab.publishing.publisher import AtomicPublisher
from newsfab.publishing.renderer import TemplateRenderer

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CycleStats:
    """Summary of a successful cycle."""

    sources: int
    feeds: int
    records: int
    bytes_written: int
    elapsed_seconds: float


class CycleRunner:
    """
    Runs cycles against a fixed renderer and destination.

    Usage:
        runner = CycleRunner(orchestrator, renderer, AtomicPublisher(), "news.html")
        stats = await runner.run_cycle(("https://example.com/feed.xml",))
    """

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        renderer: TemplateRenderer,
        publisher: AtomicPublisher,
        destination: str | Path | None = None,
    ):
        """
        Args:
            orchestrator: Fetches the sources of a cycle
            renderer: Template renderer, already known to compile
            publisher: Output writer
            destination: Output file, or None for stdout
        """
        self._orchestrator = orchestrator
        self._renderer = renderer
        self._publisher = publisher
        self._destination = destination
        self._metrics = get_metrics()

    @property
    def destination(self) -> str | Path | None:
        return self._destination

    async def run_cycle(
        self,
        sources: SourceList,
        deadline: Deadline | None = None,
    ) -> CycleStats:
        """
        Run one cycle.

        Args:
            sources: Source list captured at cycle start
            deadline: Fetch deadline (default: orchestrator's timeout from now)

        Returns:
            CycleStats on success

        Raises:
            CycleError: If rendering or publishing failed
        """
        start = time.monotonic()

        feeds = await self._orchestrator.fetch_all(sources, deadline=deadline)
        snapshot = aggregate(feeds)

        target = self._destination if self._destination is not None else "<stdout>"
        logger.info("Writing output", destination=str(target), feeds=len(snapshot.feeds))

        try:
            written = await self._publisher.publish(
                self._renderer.render(snapshot),
                self._destination,
            )
        except PublishError as e:
            elapsed = time.monotonic() - start
            self._metrics.record_cycle("error", elapsed)
            stage = "render" if isinstance(e.__cause__, RenderError) else "publish"
            raise CycleError(f"{stage} failed: {e}") from e

        elapsed = time.monotonic() - start
        stats = CycleStats(
            sources=len(sources),
            feeds=len(snapshot.feeds),
            records=snapshot.entry_count,
            bytes_written=written,
            elapsed_seconds=round(elapsed, 3),
        )
        self._metrics.record_cycle(
            "success",
            elapsed,
            feeds=stats.feeds,
            records=stats.records,
        )
        logger.info(
            "Cycle completed",
            sources=stats.sources,
            feeds=stats.feeds,
            records=stats.records,
            bytes=stats.bytes_written,
            elapsed_seconds=stats.elapsed_seconds,
        )
        return stats
