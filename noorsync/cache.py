"""TTL cache persisted in a key-value store.

Every entry is stored as a JSON envelope ``{"data", "timestamp", "ttl"}`` under
``prefix + key``. Expiry is checked on read: an expired entry is deleted by the
read that finds it and reported as a miss. There is no background sweeper.

Failures never escape the read/write surface. Any error raised by the store,
and any entry that cannot be parsed, is logged and turns into a miss (for
reads) or a no-op (for writes), so callers can always fall back to the
network.

TTLs are whole milliseconds. Fractional values (``0.5 * MS_PER_HOUR``) are
truncated on write so every stored envelope stays readable.

Usage:
    cache = CacheService(store)
    await cache.set(verse_key(2, 255), verse, ttl=TTL_QURAN_MS)
    verse = await cache.get(verse_key(2, 255))
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import orjson

from contracts.storage import KeyValueStore
from noorsync.errors import CacheError, ErrorCode, ValidationError
from noorsync.utils.datetime_utils import Clock, days_to_ms, now_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_PREFIX = "noor_cache_"
DEFAULT_TTL_MS = days_to_ms(30)


def _validate_ttl(value: Any, field: str) -> int:
    """Return ``value`` as whole milliseconds, or raise ValidationError."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValidationError(
            f"{field} must be a number", field=field, value=value, expected="milliseconds"
        )
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"{field} must be >= 0", field=field, value=value, expected=">= 0")
    return int(value)


class CacheService:
    """Namespaced, per-entry expiring cache over a ``KeyValueStore``.

    Concurrent ``set`` calls on the same key are last-writer-wins. The cache
    only ever touches keys that start with its prefix.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        prefix: str = CACHE_PREFIX,
        default_ttl: int = DEFAULT_TTL_MS,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._prefix = prefix
        self._default_ttl = _validate_ttl(default_ttl, "default_ttl")
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._expired = 0
        self._errors = 0

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    def _storage_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _decode(self, storage_key: str, raw: str) -> dict[str, Any]:
        try:
            envelope = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CacheError("Cache entry is not valid JSON", key=storage_key, cause=e) from e

        if not isinstance(envelope, dict) or "data" not in envelope:
            raise CacheError("Cache entry has no data field", key=storage_key)
        timestamp = envelope.get("timestamp")
        ttl = envelope.get("ttl")
        # bool is an int subclass; reject it explicitly
        for name, value in (("timestamp", timestamp), ("ttl", ttl)):
            if not isinstance(value, int | float) or isinstance(value, bool):
                raise CacheError(f"Cache entry has invalid {name}", key=storage_key)
        return envelope

    async def get(self, key: str) -> Any | None:
        """Return the cached value for ``key``, or None on miss or expiry."""
        storage_key = self._storage_key(key)
        # Stores may raise any exception type; all of them count as a failed read
        try:
            raw = await self._store.get(storage_key)
        except Exception as e:
            self._errors += 1
            self._misses += 1
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

        if raw is None:
            self._misses += 1
            return None

        try:
            envelope = self._decode(storage_key, raw)
        except CacheError as e:
            # Corrupt entries stay in place; the next set overwrites them
            self._errors += 1
            self._misses += 1
            logger.warning("Ignoring corrupt cache entry %s: %s", key, e)
            return None

        age = self._clock() - envelope["timestamp"]
        if age > envelope["ttl"]:
            self._expired += 1
            self._misses += 1
            logger.debug("Cache entry %s expired (age=%dms, ttl=%dms)", key, age, envelope["ttl"])
            try:
                await self._store.remove(storage_key)
            except Exception as e:
                self._errors += 1
                logger.warning("Failed to evict expired cache entry %s: %s", key, e)
            return None

        self._hits += 1
        return envelope["data"]

    async def set(self, key: str, data: Any, ttl: float | None = None) -> None:
        """Cache ``data`` under ``key`` for ``ttl`` milliseconds (default TTL when None).

        Raises:
            ValidationError: If ``ttl`` is negative, not finite or not a number.
        """
        ttl = self._default_ttl if ttl is None else _validate_ttl(ttl, "ttl")

        envelope = {"data": data, "timestamp": int(self._clock()), "ttl": ttl}
        try:
            raw = orjson.dumps(envelope).decode("utf-8")
        except TypeError as e:
            self._errors += 1
            err = CacheError(
                "Value is not JSON-serializable",
                key=key,
                code=ErrorCode.CCH_SERIALIZE_FAILED,
                cause=e,
            )
            logger.warning("Cache write skipped for %s: %s", key, err)
            return

        try:
            await self._store.set(self._storage_key(key), raw)
        except Exception as e:
            self._errors += 1
            logger.warning("Cache write failed for %s: %s", key, e)
            return
        logger.debug("Cached %s (ttl=%dms)", key, ttl)

    async def has(self, key: str) -> bool:
        """Whether a valid entry exists. Evicts the entry if it has expired."""
        return await self.get(key) is not None

    async def remove(self, key: str) -> None:
        """Delete ``key`` from the cache. Removing an absent key is a no-op."""
        try:
            await self._store.remove(self._storage_key(key))
        except Exception as e:
            self._errors += 1
            logger.warning("Cache remove failed for %s: %s", key, e)

    async def clear(self) -> int:
        """Delete every entry under this cache's prefix.

        Keys outside the prefix are untouched.

        Returns:
            Number of keys removed (0 when listing or removal failed).
        """
        try:
            keys = await self._store.get_all_keys()
            cache_keys = [k for k in keys if k.startswith(self._prefix)]
            if cache_keys:
                await self._store.multi_remove(cache_keys)
        except Exception as e:
            self._errors += 1
            logger.warning("Cache clear failed: %s", e)
            return 0
        logger.info("Cleared %d cache entries", len(cache_keys))
        return len(cache_keys)

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T | None:
        """Return the cached value, or fetch, cache and return a fresh one.

        ``None`` results from ``fetch`` are returned but not cached. Exceptions
        raised by ``fetch`` propagate to the caller.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        result = await fetch()
        if result is not None:
            await self.set(key, result, ttl=ttl)
        return result

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "expired": self._expired,
            "errors": self._errors,
            "hit_rate": self._hits / total if total > 0 else 0.0,
            "prefix": self._prefix,
            "default_ttl_ms": self._default_ttl,
        }
