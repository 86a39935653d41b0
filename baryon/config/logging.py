"""
Logging Configuration
=====================

Structured logging with structlog on top of the standard logging module.
Everything goes to stderr so generated code printed on stdout stays clean.
"""

import logging
import sys
from typing import List, Optional, TYPE_CHECKING

import structlog
from structlog.types import Processor

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import BaryonSettings


def shared_processors(renderer: Processor) -> List[Processor]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def route_to_stdlib() -> None:
    """
    Send events through the standard logging module until setup_logging() runs.

    No handlers are installed here, so library use follows the host's logging
    config, or the WARNING threshold and stderr last-resort handler without one.
    """
    if structlog.is_configured():
        return
    structlog.configure(
        processors=shared_processors(structlog.dev.ConsoleRenderer(colors=False)),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def setup_logging(settings: Optional["BaryonSettings"] = None) -> None:
    """Setup logging for the command line tool."""
    settings = settings or get_settings()

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors(renderer),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(settings.log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    route_to_stdlib()
    return structlog.get_logger(name)
