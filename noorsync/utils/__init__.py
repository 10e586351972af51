"""Shared utilities: clock helpers, logging setup and retry backoff."""

from noorsync.utils.backoff import RetryBackoff
from noorsync.utils.datetime_utils import Clock, now_ms
from noorsync.utils.logging import setup_logging

__all__ = [
    "Clock",
    "RetryBackoff",
    "now_ms",
    "setup_logging",
]
