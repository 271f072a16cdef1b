"""
logs.py — structlog setup.

Log events always go to stderr so stdout stays reserved for the response
document (the CLI prints JSON there).  Logging is silent unless debug is
enabled in Settings; then events below Settings.log_level are dropped.
"""

from __future__ import annotations

import logging
import sys

import structlog

from yt_video_info.config import Settings, get_settings

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(settings: Settings) -> int:
    if not settings.debug:
        return logging.CRITICAL
    return _LEVELS.get(settings.log_level, logging.INFO)


def _logger_factory(settings: Settings):
    if not settings.debug:
        # ReturnLogger hands the rendered event back instead of writing it.
        return structlog.ReturnLoggerFactory()
    return structlog.PrintLoggerFactory(file=sys.stderr)


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolve_level(settings)),
        logger_factory=_logger_factory(settings),
        cache_logger_on_first_use=False,
    )
