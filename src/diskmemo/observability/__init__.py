"""Observability helpers for diskmemo.

Provides structured logging for cache events.
"""

from diskmemo.observability.logging import get_logger, setup_logging, short_key

__all__ = [
    "setup_logging",
    "get_logger",
    "short_key",
]
