"""
Prometheus metrics for monitoring the fetch/publish cycle.

Defines and exposes metrics for:
- Per-source fetch outcomes and latency
- Cycle outcomes and duration
- Size of the last published snapshot
- Scheduler state and reloads

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)


class MetricsCollector:
    """
    Prometheus metrics collector for newsfab.

    Usage:
        metrics = get_metrics()
        metrics.start_server(port=8000)
        metrics.record_fetch("success", latency=0.4)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.fetches = Counter(
            "newsfab_fetches_total",
            "Total source fetches",
            ["outcome"],  # success, timeout, error
        )

        self.fetch_latency = Histogram(
            "newsfab_fetch_latency_seconds",
            "Time to fetch and parse one source",
            buckets=LATENCY_BUCKETS,
        )

        self.cycles = Counter(
            "newsfab_cycles_total",
            "Total fetch/render/publish cycles",
            ["status"],  # success, error
        )

        self.cycle_duration = Histogram(
            "newsfab_cycle_duration_seconds",
            "Duration of a full cycle",
            buckets=LATENCY_BUCKETS,
        )

        self.snapshot_feeds = Gauge(
            "newsfab_snapshot_feeds",
            "Feeds in the last published snapshot",
        )

        self.snapshot_records = Gauge(
            "newsfab_snapshot_records",
            "Entries in the last published snapshot",
        )

        self.reloads = Counter(
            "newsfab_reloads_total",
            "Source list reloads",
            ["status"],  # success, error
        )

        self.scheduler_state = Gauge(
            "newsfab_scheduler_state",
            "Current scheduler state (1 for the active state)",
            ["state"],
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on
        """
        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_fetch(self, outcome: str, latency: float | None = None) -> None:
        """
        Record one source fetch.

        Args:
            outcome: success, timeout or error
            latency: Optional fetch latency in seconds
        """
        self.fetches.labels(outcome=outcome).inc()
        if latency is not None:
            self.fetch_latency.observe(latency)

    def record_cycle(
        self,
        status: str,
        duration: float,
        feeds: int | None = None,
        records: int | None = None,
    ) -> None:
        """Record a finished cycle and, on success, the snapshot size."""
        self.cycles.labels(status=status).inc()
        self.cycle_duration.observe(duration)
        if feeds is not None:
            self.snapshot_feeds.set(feeds)
        if records is not None:
            self.snapshot_records.set(records)

    def record_reload(self, success: bool) -> None:
        self.reloads.labels(status="success" if success else "error").inc()

    def set_scheduler_state(self, state: str, all_states: list[str]) -> None:
        for name in all_states:
            self.scheduler_state.labels(state=name).set(1 if name == state else 0)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
