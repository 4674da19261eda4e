"""Neynar webhook reply bot package initialisation."""

from .background import run_async  # noqa: F401
from .caches import DeduplicationCache, ResponseCache  # noqa: F401
from .config import AppSettings, ConfigError, get_settings  # noqa: F401
from .logging_config import configure_logging  # noqa: F401
from .pipeline import IncomingRequest, WebhookProcessor, WebhookResult  # noqa: F401
from .rate_limit import SlidingWindowRateLimiter  # noqa: F401

__all__ = [
    "AppSettings",
    "ConfigError",
    "get_settings",
    "run_async",
    "configure_logging",
    "DeduplicationCache",
    "ResponseCache",
    "SlidingWindowRateLimiter",
    "IncomingRequest",
    "WebhookProcessor",
    "WebhookResult",
]
