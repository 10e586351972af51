"""Unified exception hierarchy for noor-sync.

All noor-sync exceptions inherit from NoorError, enabling consistent handling.

Exception Hierarchy:
    NoorError (base)
    +-- ConfigurationError - Configuration and settings issues
    +-- ValidationError - Invalid operation specs or arguments
    +-- StorageError - Key-value store read/write failures
    +-- CacheError - Cache entries that cannot be encoded or decoded
    +-- QueueError - Offline queue load/persist failures
    +-- RemoteExecutionError - Remote write failures

The cache and queue never let these escape their public API during normal
operation; they are raised by collaborators (stores, executors) and logged
where they are absorbed.

Usage:
    from noorsync.errors import StorageError

    try:
        await store.set(key, value)
    except StorageError as e:
        logger.warning("Store write failed: %s (code: %s)", e.message, e.code)
"""

# --- base ---
from noorsync.errors.base import (
    ConfigurationError,
    ErrorCode,
    NoorError,
)

# --- domain errors ---
from noorsync.errors.domain import (
    CacheError,
    QueueError,
    RemoteExecutionError,
    StorageError,
    ValidationError,
)

__all__ = [
    # Error codes
    "ErrorCode",
    # Base exception
    "NoorError",
    # Configuration errors
    "ConfigurationError",
    # Validation errors
    "ValidationError",
    # Storage errors
    "StorageError",
    # Cache errors
    "CacheError",
    # Queue errors
    "QueueError",
    # Remote errors
    "RemoteExecutionError",
]
