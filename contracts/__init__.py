"""Contract interfaces for noor-sync.

This module exports the Protocol interfaces the cache and offline queue
depend on. Implementations code against these contracts, not against each
other, so tests and embedding applications can supply their own.
"""

from contracts.network import (
    NetworkListener,
    NetworkMonitor,
    NetworkStatus,
)
from contracts.remote import (
    ExecutionResult,
    RemoteExecutor,
)
from contracts.storage import KeyValueStore

__all__ = [
    # Network
    "NetworkListener",
    "NetworkMonitor",
    "NetworkStatus",
    # Remote
    "ExecutionResult",
    "RemoteExecutor",
    # Storage
    "KeyValueStore",
]
