from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)


class MemoryStore:
    """In-memory key-value store.

    Used by tests and for ephemeral sessions where nothing should survive the
    process. Values are kept as the exact strings written.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        # Per-operation call counters, handy for asserting I/O in tests
        self.removes = 0
        self.writes = 0

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.writes += 1

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)
        self.removes += 1

    async def multi_remove(self, keys: Sequence[str]) -> None:
        for key in keys:
            self._data.pop(key, None)
        self.removes += len(keys)

    async def get_all_keys(self) -> list[str]:
        return list(self._data)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of the stored data."""
        return dict(self._data)

    def load(self, items: Iterable[tuple[str, str]]) -> None:
        """Seed the store without touching the write counter."""
        self._data.update(items)

    def __len__(self) -> int:
        return len(self._data)
