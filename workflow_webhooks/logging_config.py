"""Structured JSON logging for the gateway, registry and workflow runner."""

from __future__ import annotations

import logging

import structlog

LOG_LEVEL = logging.INFO


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return logging.getLevelName(level.upper())


def configure_logging(level: str | int = LOG_LEVEL) -> None:
    """Route structlog events through stdlib logging as one JSON object per line.

    Context bound with ``bind_contextvars`` (the request ``trace_id``) is merged
    into every event, including those emitted from background workers.
    """

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=_level_number(level), format="%(message)s")
