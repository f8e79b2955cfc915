"""
Jinja2 renderer for snapshots.

The template is loaded and compiled once at startup so that a broken
template fails fast instead of on the first cycle. Rendering streams
UTF-8 chunks through Template.generate_async, which lets the publisher
write output while the template is still being evaluated.

Template context:
    feeds     Feeds sorted by title
    records   Records sorted newest first (record.feed, record.entry,
              record.timestamp)
    snapshot  The Snapshot itself
"""

import logging
from collections.abc import AsyncIterator
from datetime import datetime
from pathlib import Path

import jinja2

from newsfab.errors import RenderError, TemplateError
from newsfab.feeds.schemas import Snapshot

logger = logging.getLogger(__name__)

AUTOESCAPE_EXTENSIONS = ("html", "htm", "xml", "tmpl")
DEFAULT_DATETIME_FORMAT = "%Y-%m-%d %H:%M"


def format_datetime(value: datetime | None, fmt: str = DEFAULT_DATETIME_FORMAT) -> str:
    """Jinja filter: format a timestamp, empty string when missing."""
    if value is None:
        return ""
    return value.strftime(fmt)


def create_environment(loader: jinja2.BaseLoader) -> jinja2.Environment:
    """Async-enabled environment with autoescaping for markup templates."""
    env = jinja2.Environment(
        loader=loader,
        autoescape=jinja2.select_autoescape(
            enabled_extensions=AUTOESCAPE_EXTENSIONS,
            default_for_string=True,
        ),
        enable_async=True,
        undefined=jinja2.StrictUndefined,
    )
    env.filters["datetime"] = format_datetime
    return env


class TemplateRenderer:
    """
    Renders a Snapshot through a compiled Jinja2 template.

    Usage:
        renderer = TemplateRenderer.from_file("html.tmpl")
        async for chunk in renderer.render(snapshot):
            ...
    """

    def __init__(self, template: jinja2.Template, encoding: str = "utf-8"):
        self._template = template
        self._encoding = encoding

    @classmethod
    def from_file(cls, path: str | Path) -> "TemplateRenderer":
        """
        Load and compile a template file.

        Raises:
            TemplateError: If the file is missing, unreadable or invalid
        """
        path = Path(path)
        env = create_environment(jinja2.FileSystemLoader(str(path.parent)))
        try:
            template = env.get_template(path.name)
        except jinja2.TemplateNotFound as e:
            raise TemplateError(f"template not found: {path}") from e
        except jinja2.TemplateSyntaxError as e:
            raise TemplateError(f"{path}:{e.lineno}: {e.message}") from e
        except OSError as e:
            raise TemplateError(f"cannot read template {path}: {e}") from e

        logger.debug(f"Loaded template {path}")
        return cls(template)

    @classmethod
    def from_string(cls, source: str) -> "TemplateRenderer":
        """
        Compile a template from source text.

        Raises:
            TemplateError: If the template does not compile
        """
        env = create_environment(jinja2.BaseLoader())
        try:
            template = env.from_string(source)
        except jinja2.TemplateSyntaxError as e:
            raise TemplateError(f"line {e.lineno}: {e.message}") from e
        return cls(template)

    @property
    def name(self) -> str:
        return self._template.name or "<string>"

    async def render(self, snapshot: Snapshot) -> AsyncIterator[bytes]:
        """
        Render a snapshot as a stream of encoded chunks.

        Raises:
            RenderError: If evaluating the template fails mid-stream
        """
        try:
            async for text in self._template.generate_async(
                feeds=snapshot.feeds,
                records=snapshot.records,
                snapshot=snapshot,
            ):
                yield text.encode(self._encoding)
        except Exception as e:
            raise RenderError(f"rendering {self.name} failed: {e}") from e
