"""Structlog configuration helpers for structured logging."""

from __future__ import annotations

import logging

import structlog

DEFAULT_LOG_LEVEL = "INFO"


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName((level or DEFAULT_LOG_LEVEL).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level '{level}'")
    return resolved


def configure_logging(level: str | int | None = DEFAULT_LOG_LEVEL) -> None:
    """Configure structlog to emit JSON-formatted logs at *level*."""

    numeric_level = _resolve_level(level)
    timestamper = structlog.processors.TimeStamper(fmt="iso")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=numeric_level, format="%(message)s")
    logging.getLogger().setLevel(numeric_level)
