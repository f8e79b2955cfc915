"""
Logging setup for newsfab.

structlog events and plain stdlib records (the lower-level modules log
through logging.getLogger) share one ProcessorFormatter on a stderr
handler, so both come out the same way: JSON lines in production, a
console layout otherwise. stdout stays free for rendered output when no
output file is configured.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from newsfab.config.settings import get_settings

NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def _shared_processors() -> list[Processor]:
    """Applied to structlog events and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def _final_processors(json_logs: bool) -> list[Processor]:
    processors: list[Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # ConsoleRenderer formats exc_info itself
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Override for the configured log level
        json_logs: Force JSON (True) or console (False) output. Defaults to
            JSON in production.

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Cycle completed", feeds=12, records=240)
    """
    settings = get_settings()
    level = level or settings.log_level
    if json_logs is None:
        json_logs = settings.is_production

    shared = _shared_processors()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=_final_processors(json_logs),
        )
    )

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Bind key-value pairs (e.g. cycle=3) to every later event in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)
