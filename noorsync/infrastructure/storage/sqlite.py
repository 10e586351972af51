from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections.abc import Sequence
from pathlib import Path

from noorsync.errors import ErrorCode, StorageError

logger = logging.getLogger(__name__)

# Anything the driver can raise for a key or value, including encode errors
_DRIVER_ERRORS = (sqlite3.Error, UnicodeError, ValueError, OSError)


class SQLiteStore:
    """Persistent key-value store backed by a single SQLite table.

    Every call opens its own connection inside a worker thread so the event
    loop never blocks on disk I/O. Single-key writes are atomic; there are no
    cross-key transactions.
    """

    def __init__(self, db_path: str | Path, *, timeout: float = 5.0) -> None:
        self.db_path = Path(db_path).expanduser()
        self.timeout = timeout
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at REAL
                    )
                    """
                )
        except (OSError, sqlite3.Error) as e:
            raise StorageError(
                f"Cannot open key-value store at {self.db_path}",
                operation="init",
                code=ErrorCode.STO_WRITE_FAILED,
                cause=e,
            ) from e

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=self.timeout)

    # Blocking implementations, run through asyncio.to_thread

    def _get_sync(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    def _set_sync(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, time.time()),
            )

    def _remove_sync(self, keys: Sequence[str]) -> None:
        with self._connect() as conn:
            conn.executemany("DELETE FROM kv_store WHERE key = ?", [(k,) for k in keys])

    def _keys_sync(self) -> list[str]:
        with self._connect() as conn:
            return [row[0] for row in conn.execute("SELECT key FROM kv_store")]

    # Async surface

    async def get(self, key: str) -> str | None:
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except _DRIVER_ERRORS as e:
            raise StorageError(
                f"Failed to read {key!r}",
                key=key,
                operation="get",
                code=ErrorCode.STO_READ_FAILED,
                cause=e,
            ) from e

    async def set(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._set_sync, key, value)
        except _DRIVER_ERRORS as e:
            raise StorageError(
                f"Failed to write {key!r}",
                key=key,
                operation="set",
                code=ErrorCode.STO_WRITE_FAILED,
                cause=e,
            ) from e

    async def remove(self, key: str) -> None:
        await self.multi_remove([key])

    async def multi_remove(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        try:
            await asyncio.to_thread(self._remove_sync, list(keys))
        except _DRIVER_ERRORS as e:
            raise StorageError(
                f"Failed to delete {len(keys)} key(s)",
                operation="remove",
                code=ErrorCode.STO_DELETE_FAILED,
                details={"keys": list(keys)[:10]},
                cause=e,
            ) from e

    async def get_all_keys(self) -> list[str]:
        try:
            return await asyncio.to_thread(self._keys_sync)
        except _DRIVER_ERRORS as e:
            raise StorageError(
                "Failed to list keys",
                operation="keys",
                code=ErrorCode.STO_READ_FAILED,
                cause=e,
            ) from e

    def _stats_sync(self) -> dict[str, object]:
        with self._connect() as conn:
            count = conn.execute("SELECT COUNT(*) FROM kv_store").fetchone()[0]
        size = self.db_path.stat().st_size if self.db_path.exists() else 0
        return {"entries": count, "size_bytes": size, "db_path": str(self.db_path)}

    async def stats(self) -> dict[str, object]:
        """Entry count and file size, for diagnostics."""
        try:
            return await asyncio.to_thread(self._stats_sync)
        except _DRIVER_ERRORS as e:
            raise StorageError(
                "Failed to read store stats",
                operation="stats",
                code=ErrorCode.STO_READ_FAILED,
                cause=e,
            ) from e
