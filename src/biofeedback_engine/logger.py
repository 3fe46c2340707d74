"""Structured logging configuration using *structlog*."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

from biofeedback_engine.config import get_settings


def setup_logging(
    level: str | None = None,
    *,
    json: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure *structlog* for the host application.

    Call once at startup; the engine modules only ever call
    :func:`structlog.get_logger`.  *level* defaults to
    ``BIOFEEDBACK_LOG_LEVEL``; output is JSON unless *stream* is a terminal.
    """
    level = (level or get_settings().log_level).upper()
    stream = stream or sys.stderr
    if json is None:
        json = not stream.isatty()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )
