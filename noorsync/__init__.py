"""noor-sync - offline-first cache and write queue for the Noor devotional app.

Two mechanisms share one durable key-value store:

- ``CacheService``: per-entry TTL cache for remote content (verses, hadiths,
  Names of Allah), evicted when a read finds the entry expired.
- ``OfflineQueue``: FIFO queue of remote writes, persisted across restarts
  and replayed when connectivity returns.
"""

from noorsync.cache import CACHE_PREFIX, DEFAULT_TTL_MS, CacheService
from noorsync.reliability.offline import MAX_RETRIES, QUEUE_KEY, OfflineQueue, QueueStatus

__version__ = "0.1.0"

__all__ = [
    "CACHE_PREFIX",
    "DEFAULT_TTL_MS",
    "MAX_RETRIES",
    "QUEUE_KEY",
    "CacheService",
    "OfflineQueue",
    "QueueStatus",
    "__version__",
]
