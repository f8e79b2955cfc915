"""
Command-line interface for newsfab.

Usage:
    newsfab run            # Fetch, render and publish every interval
    newsfab run --once     # Single cycle, then exit
    newsfab check          # Validate configuration and template

Signals while running:
    SIGHUP           reload the source list from the config file
    SIGINT, SIGTERM  finish the current cycle and exit
"""

import asyncio
import sys

import click
import structlog

from newsfab.config.loader import load_sources
from newsfab.config.settings import get_settings
from newsfab.errors import ConfigError, TemplateError
from newsfab.observability.logging import setup_logging
from newsfab.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """newsfab - merge syndication feeds into one published page."""
    setup_logging(level="DEBUG" if debug else None)


@main.command()
@click.option("-c", "--config", "config_file", default=None, help="Config file (YAML with a 'urls' list)")
@click.option("-o", "--output", "output_file", default=None, help="Output file; empty writes to stdout")
@click.option("-t", "--template", "template_file", default=None, help="Template file")
@click.option("--interval", type=float, default=None, help="Seconds between refreshes")
@click.option("--timeout", type=float, default=None, help="Fetch deadline per cycle in seconds")
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
@click.option("--cache/--no-cache", default=None, help="Use the on-disk HTTP response cache")
@click.option("--metrics/--no-metrics", default=False, help="Enable metrics server")
def run(
    config_file: str | None,
    output_file: str | None,
    template_file: str | None,
    interval: float | None,
    timeout: float | None,
    once: bool,
    cache: bool | None,
    metrics: bool,
) -> None:
    """Run the fetch/render/publish scheduler."""
    from newsfab.feeds.cache import DiskResponseCache, MemoryResponseCache
    from newsfab.feeds.fetcher import SourceFetcher
    from newsfab.feeds.http_client import CachingHTTPClient
    from newsfab.feeds.orchestrator import FetchOrchestrator
    from newsfab.publishing.publisher import AtomicPublisher
    from newsfab.publishing.renderer import TemplateRenderer
    from newsfab.services.cycle import CycleRunner
    from newsfab.services.scheduler import FeedScheduler

    logger = structlog.get_logger("newsfab.cli")
    overrides = {
        "config_file": config_file,
        "output_file": output_file,
        "template_file": template_file,
        "refresh_interval_seconds": interval,
        "fetch_timeout_seconds": timeout,
        "cache_enabled": cache,
    }
    settings = get_settings().model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )

    # Startup failures are the only fatal ones
    try:
        sources = load_sources(settings.config_file)
        renderer = TemplateRenderer.from_file(settings.template_file)
    except (ConfigError, TemplateError) as e:
        logger.error("Startup failed", error=str(e))
        sys.exit(1)

    async def serve():
        if settings.cache_enabled:
            response_cache = DiskResponseCache(settings.cache_dir)
        else:
            response_cache = MemoryResponseCache()

        if metrics:
            get_metrics().start_server(settings.metrics_port)

        async with CachingHTTPClient(
            cache=response_cache,
            user_agent=settings.user_agent,
            max_connections=settings.max_connections,
        ) as client:
            orchestrator = FetchOrchestrator(
                SourceFetcher(client),
                timeout=settings.fetch_timeout_seconds,
            )
            runner = CycleRunner(
                orchestrator,
                renderer,
                AtomicPublisher(),
                destination=settings.output_path,
            )
            scheduler = FeedScheduler(
                runner,
                sources,
                reload_sources=lambda: load_sources(settings.config_file),
                interval=settings.refresh_interval_seconds,
                fetch_timeout=settings.fetch_timeout_seconds,
                shutdown_grace=settings.shutdown_grace_seconds,
            )
            scheduler.install_signal_handlers()
            await scheduler.run(max_cycles=1 if once else None)

    asyncio.run(serve())
    logger.info("Exiting")


@main.command()
@click.option("-c", "--config", "config_file", default=None, help="Config file")
@click.option("-t", "--template", "template_file", default=None, help="Template file")
def check(config_file: str | None, template_file: str | None) -> None:
    """Validate the configuration and template."""
    from newsfab.publishing.renderer import TemplateRenderer

    settings = get_settings()
    config_file = config_file if config_file is not None else settings.config_file
    template_file = template_file if template_file is not None else settings.template_file

    ok = True
    try:
        sources = load_sources(config_file)
        click.echo(click.style(f"  ✓ {config_file}: {len(sources)} sources", fg="green"))
        for source in sources:
            click.echo(f"      {source}")
    except ConfigError as e:
        ok = False
        click.echo(click.style(f"  ✗ {config_file}: {e}", fg="red"))

    try:
        TemplateRenderer.from_file(template_file)
        click.echo(click.style(f"  ✓ {template_file}", fg="green"))
    except TemplateError as e:
        ok = False
        click.echo(click.style(f"  ✗ {template_file}: {e}", fg="red"))

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
