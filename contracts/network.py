"""Network status monitoring contract."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class NetworkStatus:
    """A connectivity observation.

    Attributes:
        is_connected: True when online, False when offline, None when unknown.
            Unknown is treated as offline when deciding whether to sync.
    """

    is_connected: bool | None

    @property
    def is_online(self) -> bool:
        """Whether this status allows remote writes."""
        return self.is_connected is True


NetworkListener = Callable[[NetworkStatus], None]


@runtime_checkable
class NetworkMonitor(Protocol):
    """Source of connectivity transitions."""

    def add_listener(self, listener: NetworkListener) -> Callable[[], None]:
        """Register ``listener`` for status events.

        Returns:
            A callable that unregisters the listener.
        """
        ...

    async def fetch_current_status(self) -> NetworkStatus:
        """Return the current connectivity status."""
        ...
