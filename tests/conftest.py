"""Pytest configuration for noor-sync tests.

Provides in-memory collaborators for the cache and offline queue: a manual
clock, a controllable network monitor and a scripted remote executor.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any

import pytest
import pytest_asyncio

from contracts.network import NetworkListener, NetworkStatus
from contracts.remote import ExecutionResult
from noorsync.infrastructure.storage import MemoryStore
from noorsync.reliability.offline import OfflineQueue

START_MS = 1_700_000_000_000


class ManualClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeNetworkMonitor:
    """Network monitor whose status is set by the test."""

    def __init__(self, is_connected: bool | None = False) -> None:
        self.status = NetworkStatus(is_connected=is_connected)
        self.listeners: list[NetworkListener] = []
        self.fetch_error: Exception | None = None
        self.fetch_calls = 0

    def add_listener(self, listener: NetworkListener) -> Callable[[], None]:
        self.listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    async def fetch_current_status(self) -> NetworkStatus:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.status

    def set_status(self, is_connected: bool | None) -> None:
        """Change the status and notify every listener."""
        self.status = NetworkStatus(is_connected=is_connected)
        for listener in list(self.listeners):
            listener(self.status)

    def go_online(self) -> None:
        self.set_status(True)

    def go_offline(self) -> None:
        self.set_status(False)


class ScriptedExecutor:
    """Remote executor returning scripted outcomes.

    Each call pops the next scripted item (an ``ExecutionResult`` or an
    exception to raise); once the script is exhausted ``default`` is used.
    Setting ``gate`` blocks every call until the event is set.
    """

    def __init__(self, default: ExecutionResult | None = None) -> None:
        self.default = default or ExecutionResult.success()
        self.script: list[ExecutionResult | Exception] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()

    def then(self, *outcomes: ExecutionResult | Exception) -> ScriptedExecutor:
        self.script.extend(outcomes)
        return self

    async def __call__(self, operation_type: str, payload: Mapping[str, Any]) -> ExecutionResult:
        self.calls.append((str(operation_type), dict(payload)))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.script.pop(0) if self.script else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def call_types(self) -> list[str]:
        return [op_type for op_type, _ in self.calls]


def _exam_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "user_id": "u1",
        "timing": "today",
        "subject": "Mathematics",
        "feeling": "anxious",
        "verse_id": "2:286",
    }
    payload.update(overrides)
    return payload


def _history_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "user_id": "u1",
        "content_id": "2:255",
        "content_type": "verse",
        "date": "2024-03-11",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def exam_payload() -> Callable[..., dict[str, Any]]:
    """Builder for valid exam_save payloads."""
    return _exam_payload


@pytest.fixture
def history_payload() -> Callable[..., dict[str, Any]]:
    """Builder for valid history_save payloads."""
    return _history_payload


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def network() -> FakeNetworkMonitor:
    """Network monitor that starts offline."""
    return FakeNetworkMonitor(is_connected=False)


@pytest.fixture
def executor() -> ScriptedExecutor:
    return ScriptedExecutor()


@pytest_asyncio.fixture
async def make_queue(
    store: MemoryStore,
    network: FakeNetworkMonitor,
    executor: ScriptedExecutor,
    clock: ManualClock,
) -> AsyncIterator[Callable[..., OfflineQueue]]:
    """Factory for queues over the shared fixtures; closes them on teardown."""
    created: list[OfflineQueue] = []

    def factory(**kwargs: Any) -> OfflineQueue:
        kwargs.setdefault("clock", clock)
        queue = OfflineQueue(
            kwargs.pop("store", store),
            kwargs.pop("monitor", network),
            kwargs.pop("executor", executor),
            **kwargs,
        )
        created.append(queue)
        return queue

    yield factory

    for queue in created:
        await queue.close()
