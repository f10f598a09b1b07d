"""Structured logging setup for processes embedding the engine."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

from simcore.engine.config import get_settings


def configure_logging(level: Optional[str] = None) -> None:
    """Set up structlog with human-readable console output on stderr.

    Events below *level* are dropped by the bound logger before any
    processor runs.  Without an explicit level the configured
    ``log_level`` (SIMCORE_LOG_LEVEL) is used.
    """
    if level is None:
        level = get_settings().log_level

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
