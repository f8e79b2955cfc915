"""newsfab - periodic feed aggregation into an atomically published page."""

__version__ = "0.1.0"
