"""Network connectivity monitoring.

Probes a well-known host with a TCP connect and reports online/offline
transitions to listeners. The offline queue subscribes to these events to
replay pending writes when the device reconnects.

Example:
    >>> monitor = ConnectivityMonitor(check_interval=15.0)
    >>> unsubscribe = monitor.add_listener(lambda s: print(s.is_connected))
    >>> monitor.start()
    >>> # Later...
    >>> await monitor.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from contracts.network import NetworkListener, NetworkStatus

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Poll-based ``NetworkMonitor`` implementation.

    Listeners are notified whenever the observed status changes, including
    the first observation after ``start``.
    """

    DEFAULT_HOST = "1.1.1.1"
    DEFAULT_PORT = 443
    DEFAULT_CHECK_INTERVAL = 30.0  # seconds
    DEFAULT_TIMEOUT = 3.0  # seconds

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize connectivity monitor.

        Args:
            host: Host to probe
            port: TCP port to probe
            check_interval: Seconds between checks while running
            timeout: Seconds before a probe counts as offline
        """
        self._host = host
        self._port = port
        self._check_interval = check_interval
        self._timeout = timeout
        self._listeners: list[NetworkListener] = []
        self._last_status: NetworkStatus | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def last_status(self) -> NetworkStatus:
        """Most recent observation, unknown before the first check."""
        return self._last_status or NetworkStatus(is_connected=None)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: NetworkListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def probe(self) -> bool:
        """Try one TCP connection to the probe host."""
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port), timeout=self._timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug("Probe to %s:%d failed: %s", self._host, self._port, e)
            return False

        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        return True

    async def fetch_current_status(self) -> NetworkStatus:
        return NetworkStatus(is_connected=await self.probe())

    async def check_now(self) -> NetworkStatus:
        """Probe once and notify listeners if the status changed."""
        status = await self.fetch_current_status()
        self._update(status)
        return status

    def _update(self, status: NetworkStatus) -> None:
        previous = self._last_status
        if previous == status:
            return
        self._last_status = status

        if status.is_online:
            logger.info("Connectivity restored" if previous is not None else "Network online")
        else:
            logger.warning("Connectivity lost" if previous is not None else "Network offline")
        self._notify(status)

    def _notify(self, status: NetworkStatus) -> None:
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error("Network listener %r failed: %s", listener, e, exc_info=True)

    def start(self) -> None:
        """Start background monitoring on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._monitor_loop())
        logger.info(
            "Connectivity monitor started (%s:%d every %.0fs)",
            self._host,
            self._port,
            self._check_interval,
        )

    async def stop(self) -> None:
        """Stop background monitoring."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Connectivity monitor stopped")

    async def _monitor_loop(self) -> None:
        """Background monitoring loop."""
        while True:
            try:
                await self.check_now()
            except Exception as e:
                logger.error("Error in connectivity check: %s", e)
            await asyncio.sleep(self._check_interval)
