"""Composition root.

Builds the store, cache, connectivity monitor and offline queue from a
``NoorConfig`` so applications and the CLI wire things up the same way.

Usage:
    services = create_sync_services()
    await services.start()
    try:
        await services.queue.enqueue(spec)
    finally:
        await services.stop()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from contracts.network import NetworkMonitor
from contracts.remote import RemoteExecutor
from contracts.storage import KeyValueStore
from noorsync.cache import CacheService
from noorsync.config import NoorConfig, get_config
from noorsync.infrastructure.storage import SQLiteStore
from noorsync.reliability.connectivity import ConnectivityMonitor
from noorsync.reliability.offline import OfflineQueue
from noorsync.utils.backoff import RetryBackoff

logger = logging.getLogger(__name__)


@dataclass
class SyncServices:
    """The wired-up cache and offline queue sharing one store."""

    store: KeyValueStore
    cache: CacheService
    monitor: NetworkMonitor
    queue: OfflineQueue

    async def start(self) -> None:
        """Initialize the queue and start connectivity polling."""
        await self.queue.initialize()
        if isinstance(self.monitor, ConnectivityMonitor):
            self.monitor.start()

    async def stop(self) -> None:
        await self.queue.close()
        if isinstance(self.monitor, ConnectivityMonitor):
            await self.monitor.stop()


def create_sync_services(
    config: NoorConfig | None = None,
    *,
    store: KeyValueStore | None = None,
    monitor: NetworkMonitor | None = None,
    executor: RemoteExecutor | None = None,
) -> SyncServices:
    """Build services from config, using any collaborators passed in.

    Raises:
        ConfigurationError: If no executor is given and Supabase credentials
            are not configured.
    """
    cfg = config or get_config()

    if executor is None:
        # Deferred so the Supabase client is only imported when needed
        from noorsync.reliability.executor import create_supabase_executor

        executor = create_supabase_executor(cfg.remote.supabase_url, cfg.remote.supabase_key)

    if store is None:
        store = SQLiteStore(cfg.storage.db_path)

    if monitor is None:
        monitor = ConnectivityMonitor(
            cfg.network.probe_host,
            cfg.network.probe_port,
            check_interval=cfg.network.check_interval_seconds,
            timeout=cfg.network.timeout_seconds,
        )

    backoff: RetryBackoff | None = None
    if cfg.queue.backoff_base_ms > 0 and cfg.queue.backoff_max_ms > 0:
        backoff = RetryBackoff(
            base_delay_ms=cfg.queue.backoff_base_ms,
            max_delay_ms=cfg.queue.backoff_max_ms,
        )

    cache = CacheService(
        store,
        prefix=cfg.cache.prefix,
        default_ttl=cfg.cache.default_ttl_ms,
    )
    queue = OfflineQueue(
        store,
        monitor,
        executor,
        storage_key=cfg.queue.storage_key,
        max_retries=cfg.queue.max_retries,
        backoff=backoff,
        sweep_interval=cfg.queue.sweep_interval_seconds or None,
    )
    logger.debug(
        "Sync services created (store=%s, backoff=%s)", type(store).__name__, backoff is not None
    )
    return SyncServices(store=store, cache=cache, monitor=monitor, queue=queue)
