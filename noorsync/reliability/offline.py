"""Durable offline write queue with network-aware replay.

Writes that cannot reach the remote store are queued, persisted as a single
JSON array in the key-value store, and replayed in FIFO order whenever the
device comes back online (or when ``process_queue`` is called directly).

Per-operation lifecycle:

    Pending -> Applying -> Succeeded          (removed)
                        -> DuplicateDetected  (removed, already applied remotely)
                        -> TransientFailure   (retry_count += 1, kept while < max_retries)
                        -> PermanentlyFailed  (removed, logged at ERROR)

Delivery is at-least-once. A crash between the remote write and the next
persist replays the operation, which the executor reports as a duplicate.

Example:
    >>> queue = OfflineQueue(store, monitor, executor)
    >>> await queue.initialize()
    >>> await queue.enqueue(ExamSave(data=session))
    >>> queue.get_status()
    QueueStatus(queue_size=1, is_online=False, is_syncing=False)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import orjson
from pydantic import BaseModel

from contracts.network import NetworkMonitor, NetworkStatus
from contracts.remote import ExecutionResult, RemoteExecutor
from contracts.storage import KeyValueStore
from noorsync.errors import ErrorCode, QueueError, ValidationError
from noorsync.reliability.operations import (
    ExamSave,
    HistorySave,
    PreferencesSave,
    QueuedOperation,
    parse_operation_spec,
)
from noorsync.utils.backoff import RetryBackoff
from noorsync.utils.datetime_utils import Clock, now_ms

logger = logging.getLogger(__name__)

QUEUE_KEY = "@noor_offline_queue"
MAX_RETRIES = 5


@dataclass(frozen=True)
class QueueStatus:
    """Point-in-time view of the queue."""

    queue_size: int
    is_online: bool
    is_syncing: bool


@dataclass
class SyncPassResult:
    """Counters for one drain pass."""

    applied: int = 0
    duplicates: int = 0
    retrying: int = 0
    dropped: int = 0
    deferred: int = 0

    @property
    def attempted(self) -> int:
        return self.applied + self.duplicates + self.retrying + self.dropped


async def load_persisted_queue(
    store: KeyValueStore,
    *,
    storage_key: str = QUEUE_KEY,
    max_retries: int = MAX_RETRIES,
) -> list[QueuedOperation]:
    """Read a persisted queue without draining it.

    Any error raised by the store yields an empty queue. A blob that is not a
    JSON array loses the whole queue. Inside a valid array, each malformed
    entry is skipped on its own, and entries that already reached
    ``max_retries`` are dropped.
    """
    try:
        raw = await store.get(storage_key)
    except Exception as e:
        logger.error("Failed to load offline queue, starting empty: %s", e)
        return []
    if raw is None:
        return []

    try:
        items = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        err = QueueError(
            "Offline queue blob is not valid JSON",
            storage_key=storage_key,
            code=ErrorCode.QUE_LOAD_FAILED,
            cause=e,
        )
        logger.error("%s; discarding persisted queue", err)
        return []
    if not isinstance(items, list):
        logger.error(
            "Offline queue blob is a %s, not a list; discarding persisted queue",
            type(items).__name__,
        )
        return []

    operations: list[QueuedOperation] = []
    for index, item in enumerate(items):
        try:
            op = QueuedOperation.from_dict(item)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping corrupted queued operation at index %d: %s", index, e)
            continue
        if op.retry_count >= max_retries:
            logger.error(
                "Dropping operation %s (%s): already failed %d times",
                op.id,
                op.type,
                op.retry_count,
            )
            continue
        operations.append(op)

    if len(operations) != len(items):
        logger.warning("Recovered %d of %d queued operations", len(operations), len(items))
    return operations


class OfflineQueue:
    """Persistent FIFO queue of remote writes, drained when online.

    Only one drain pass runs at a time. Operations enqueued during a pass are
    appended and persisted immediately, then picked up by a follow-up pass.
    The queue owns both its in-memory list and the persisted blob; nothing
    else should write ``storage_key``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        monitor: NetworkMonitor,
        executor: RemoteExecutor,
        *,
        storage_key: str = QUEUE_KEY,
        max_retries: int = MAX_RETRIES,
        backoff: RetryBackoff | None = None,
        sweep_interval: float | None = None,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the queue.

        Args:
            store: Key-value store holding the persisted queue.
            monitor: Source of online/offline transitions.
            executor: Applies one operation to the remote store.
            storage_key: Key under which the queue is persisted.
            max_retries: Failed attempts after which an operation is dropped.
            backoff: Optional delay policy between failed attempts.
            sweep_interval: Seconds between periodic drain attempts (None disables).
            clock: Epoch-millisecond clock.
        """
        if max_retries < 1:
            raise ValidationError(
                "max_retries must be >= 1", field="max_retries", value=max_retries
            )
        if sweep_interval is not None and sweep_interval <= 0:
            raise ValidationError(
                "sweep_interval must be > 0", field="sweep_interval", value=sweep_interval
            )

        self._store = store
        self._monitor = monitor
        self._executor = executor
        self._storage_key = storage_key
        self._max_retries = max_retries
        self._backoff = backoff
        self._sweep_interval = sweep_interval
        self._clock = clock

        self._queue: list[QueuedOperation] = []
        self._is_online = False
        self._initialized = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._sweep_task: asyncio.Task[None] | None = None
        self._drain_tasks: set[asyncio.Task[Any]] = set()

        self._init_lock = asyncio.Lock()
        self._sync_lock = asyncio.Lock()
        self._persist_lock = asyncio.Lock()

        # Bumped by clear_queue so an in-flight pass discards what it retained
        self._generation = 0
        # Bumped by enqueue so a finished pass knows whether new work arrived
        self._enqueued = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Load the persisted queue, subscribe to the network and drain if online.

        Safe to call more than once; only the first call has an effect.
        """
        async with self._init_lock:
            if self._initialized:
                return

            self._loop = asyncio.get_running_loop()
            self._queue = await self._load()
            self._unsubscribe = self._monitor.add_listener(self._on_network_change)

            try:
                status = await self._monitor.fetch_current_status()
                self._is_online = status.is_online
            except Exception as e:
                logger.warning("Could not determine network status, assuming offline: %s", e)
                self._is_online = False

            self._initialized = True
            logger.info(
                "Offline queue initialized: %d pending, online=%s",
                len(self._queue),
                self._is_online,
            )

            if self._is_online and self._queue:
                self._schedule_drain()
            if self._sweep_interval is not None:
                self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def close(self) -> None:
        """Unsubscribe from the network and cancel background work."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks: list[asyncio.Task[Any]] = list(self._drain_tasks)
        if self._sweep_task is not None:
            tasks.append(self._sweep_task)
            self._sweep_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._drain_tasks.clear()
        self._initialized = False
        self._loop = None
        logger.debug("Offline queue closed with %d pending operations", len(self._queue))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _load(self) -> list[QueuedOperation]:
        return await load_persisted_queue(
            self._store, storage_key=self._storage_key, max_retries=self._max_retries
        )

    async def _persist(self) -> bool:
        """Write the whole queue under the storage key.

        Serialized so a later call always writes the later in-memory state.
        """
        async with self._persist_lock:
            size = len(self._queue)
            try:
                blob = orjson.dumps([op.to_dict() for op in self._queue]).decode("utf-8")
            except TypeError as e:
                logger.error("Offline queue is not serializable (%d ops): %s", size, e)
                return False
            try:
                await self._store.set(self._storage_key, blob)
            except Exception as e:
                err = QueueError(
                    "Failed to persist offline queue",
                    storage_key=self._storage_key,
                    queue_size=size,
                    cause=e,
                )
                logger.warning("%s: %s", err, e)
                return False
            return True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def enqueue(
        self, spec: HistorySave | ExamSave | PreferencesSave | Mapping[str, Any]
    ) -> str:
        """Queue a remote write and try to apply it if online.

        Args:
            spec: A typed operation spec, or a raw ``{"type", "data"}`` mapping.

        Returns:
            The id of the queued operation.

        Raises:
            ValidationError: If a raw mapping does not describe a valid operation.
        """
        if not isinstance(spec, BaseModel):
            spec = parse_operation_spec(spec)
        if not self._initialized:
            await self.initialize()

        op = QueuedOperation.create(spec.operation_type(), spec.payload(), now=self._clock())
        self._queue.append(op)
        self._enqueued += 1
        logger.debug("Queued %s operation %s (%d pending)", op.type, op.id, len(self._queue))

        await self._persist()

        if self._is_online:
            self._schedule_drain()
        return op.id

    async def process_queue(self) -> SyncPassResult | None:
        """Run one drain pass.

        Returns None without doing anything when a pass is already running,
        the queue is empty, or the device is offline.
        """
        # No await between the check and the acquire, so only one pass starts
        if self._sync_lock.locked() or not self._queue or not self._is_online:
            return None
        async with self._sync_lock:
            return await self._drain()

    def get_status(self) -> QueueStatus:
        return QueueStatus(
            queue_size=len(self._queue),
            is_online=self._is_online,
            is_syncing=self._sync_lock.locked(),
        )

    def pending(self) -> list[QueuedOperation]:
        """Return copies of the queued operations in order."""
        return [op.copy() for op in self._queue]

    async def clear_queue(self) -> int:
        """Discard every queued operation.

        Returns:
            Number of operations discarded.
        """
        discarded = len(self._queue)
        self._queue = []
        self._generation += 1
        await self._persist()
        logger.warning("Offline queue cleared, %d operations discarded", discarded)
        return discarded

    async def wait_until_idle(self) -> None:
        """Wait for every scheduled drain, including follow-up passes."""
        while self._drain_tasks:
            await asyncio.gather(*list(self._drain_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Draining
    # ------------------------------------------------------------------

    async def _drain(self) -> SyncPassResult:
        generation = self._generation
        enqueued_before = self._enqueued
        snapshot = list(self._queue)
        retained: list[QueuedOperation] = []
        result = SyncPassResult()

        logger.info("Syncing %d queued operations", len(snapshot))
        for op in snapshot:
            if not self._is_online:
                retained.append(op)
                continue
            if op.next_attempt_at is not None and op.next_attempt_at > self._clock():
                result.deferred += 1
                retained.append(op)
                continue

            outcome = await self._execute(op)
            if outcome.settled:
                if outcome.duplicate:
                    result.duplicates += 1
                    logger.info("Operation %s already applied remotely, removing", op.id)
                else:
                    result.applied += 1
                    logger.debug("Applied %s operation %s", op.type, op.id)
                continue

            # self._queue still holds the original until the swap below, so a
            # pass cancelled here leaves the in-memory entry unchanged
            failed = op.copy()
            failed.retry_count += 1
            failed.last_error = outcome.error
            if failed.retry_count >= self._max_retries:
                result.dropped += 1
                logger.error(
                    "Dropping %s operation %s after %d failed attempts: %s",
                    failed.type,
                    failed.id,
                    failed.retry_count,
                    outcome.error or "unknown error",
                )
                continue

            result.retrying += 1
            if self._backoff is not None:
                failed.next_attempt_at = self._backoff.next_attempt_at(
                    self._clock(), failed.retry_count
                )
            retained.append(failed)
            logger.warning(
                "Operation %s failed (attempt %d/%d): %s",
                failed.id,
                failed.retry_count,
                self._max_retries,
                outcome.error or "unknown error",
            )

        if generation != self._generation:
            # Cleared mid-pass; keep only what was enqueued after the clear
            if retained:
                logger.warning(
                    "Queue cleared during sync, discarding %d retained operations", len(retained)
                )
        else:
            arrived = self._queue[len(snapshot) :]
            self._queue = retained + arrived

        await self._persist()

        logger.info(
            "Sync pass done: %d applied, %d duplicate, %d retrying, %d dropped, "
            "%d deferred; %d pending",
            result.applied,
            result.duplicates,
            result.retrying,
            result.dropped,
            result.deferred,
            len(self._queue),
        )

        if self._enqueued != enqueued_before and self._is_online and self._queue:
            self._schedule_drain()
        return result

    async def _execute(self, op: QueuedOperation) -> ExecutionResult:
        try:
            return await self._executor(op.type, op.data)
        except Exception as e:
            return ExecutionResult.failed(f"{type(e).__name__}: {e}")

    def _schedule_drain(self) -> None:
        task = asyncio.create_task(self.process_queue())
        self._drain_tasks.add(task)
        task.add_done_callback(self._on_drain_done)

    def _on_drain_done(self, task: asyncio.Task[Any]) -> None:
        self._drain_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background sync failed: %s", exc, exc_info=exc)

    async def _sweep_loop(self) -> None:
        """Retry operations held back by backoff while staying online."""
        interval = self._sweep_interval or 0.0
        while True:
            await asyncio.sleep(interval)
            try:
                await self.process_queue()
            except Exception as e:
                logger.error("Periodic sync failed: %s", e, exc_info=True)

    # ------------------------------------------------------------------
    # Network transitions
    # ------------------------------------------------------------------

    def _on_network_change(self, status: NetworkStatus) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._apply_network_status(status)
        else:
            loop.call_soon_threadsafe(self._apply_network_status, status)

    def _apply_network_status(self, status: NetworkStatus) -> None:
        if not self._initialized:
            return
        was_online = self._is_online
        self._is_online = status.is_online

        if self._is_online and not was_online:
            logger.info("Back online with %d queued operations", len(self._queue))
            if self._queue:
                self._schedule_drain()
        elif was_online and not self._is_online:
            logger.info("Gone offline, writes will be queued")

