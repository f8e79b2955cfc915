"""Observability layer - logging and metrics."""

from newsfab.observability.logging import setup_logging
from newsfab.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
