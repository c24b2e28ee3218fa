"""
Diagnostics for balance-diff.

stdout belongs to reports and JSON documents, so every log line goes to stderr.
``--verbose`` switches to DEBUG with a console renderer; otherwise warnings and
errors are written as JSON lines that cron and CI wrappers can collect.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog

from .config import settings

# transport internals log every request at DEBUG
QUIET_LOGGERS = ("httpcore", "httpx")


def setup_logging(log_level: Optional[str] = None, *, stream: Optional[TextIO] = None) -> None:
    """Route structlog and stdlib logging to ``stream`` (stderr by default).

    Args:
        log_level: Level name; falls back to ``settings.log_level``.
        stream: Destination for log lines.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.WARNING)
    stream = stream or sys.stderr
    verbose = level <= logging.DEBUG

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if verbose:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # adapters and services log through stdlib with %-style arguments
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
