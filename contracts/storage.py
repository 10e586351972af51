"""Durable key-value store contract.

The cache and the offline queue persist everything through this interface,
so the backing medium (SQLite file, in-memory dict, platform storage) can be
swapped without changing consumer code.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Asynchronous string-keyed, string-valued storage.

    Single-key operations are expected to be crash-safe. Nothing is
    transactional across keys. Implementations raise
    ``noorsync.errors.StorageError`` when the medium fails.
    """

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    async def remove(self, key: str) -> None:
        """Delete ``key``. Removing an absent key is not an error."""
        ...

    async def multi_remove(self, keys: Sequence[str]) -> None:
        """Delete every key in ``keys``."""
        ...

    async def get_all_keys(self) -> list[str]:
        """Return every key currently stored."""
        ...
