"""Offline-first reliability: write queue, connectivity and remote execution."""

from noorsync.reliability.connectivity import ConnectivityMonitor
from noorsync.reliability.offline import (
    MAX_RETRIES,
    QUEUE_KEY,
    OfflineQueue,
    QueueStatus,
    SyncPassResult,
    load_persisted_queue,
)
from noorsync.reliability.operations import (
    ExamSave,
    ExamSession,
    HistoryEntry,
    HistorySave,
    OperationSpec,
    OperationType,
    PreferencesSave,
    QueuedOperation,
    UserPreferences,
    parse_operation_spec,
)

__all__ = [
    # Connectivity
    "ConnectivityMonitor",
    # Queue
    "MAX_RETRIES",
    "QUEUE_KEY",
    "OfflineQueue",
    "QueueStatus",
    "SyncPassResult",
    "load_persisted_queue",
    # Operations
    "ExamSave",
    "ExamSession",
    "HistoryEntry",
    "HistorySave",
    "OperationSpec",
    "OperationType",
    "PreferencesSave",
    "QueuedOperation",
    "UserPreferences",
    "parse_operation_spec",
]
