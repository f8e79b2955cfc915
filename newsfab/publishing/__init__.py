"""Publishing - template rendering and atomic output."""

from newsfab.publishing.publisher import AtomicPublisher, atomic_write_bytes
from newsfab.publishing.renderer import TemplateRenderer

__all__ = ["AtomicPublisher", "TemplateRenderer", "atomic_write_bytes"]
