"""Configuration - settings and the source list loader."""

from newsfab.config.loader import load_sources
from newsfab.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "load_sources"]
