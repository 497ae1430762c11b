"""Logging configuration.

Structured logging via structlog on top of the stdlib ``logging`` module.
Call :func:`configure_logging` once from the process entry point; library
code only does ``structlog.get_logger(__name__)``.

Environment:
    LOG_LEVEL: DEBUG | INFO | WARNING | ERROR (default INFO)
    LOG_FORMAT: console | json (default console)
"""

from __future__ import annotations

import logging as _logging
import os
from typing import Optional

import structlog


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Configure stdlib logging and structlog processors.

    Args:
        level: Log level name, overrides LOG_LEVEL
        fmt: Renderer ("console" or "json"), overrides LOG_FORMAT
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(_logging, level_name, _logging.INFO)
    renderer_name = (fmt or os.getenv("LOG_FORMAT", "console")).lower()

    _logging.basicConfig(
        level=log_level,
        format="%(message)s",
    )

    renderer: structlog.types.Processor
    if renderer_name == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
