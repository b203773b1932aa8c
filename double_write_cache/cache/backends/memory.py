"""
Double Write Cache — Memory Store

In-memory cache with LRU eviction and TTL support, exposing the
memcached-client method shape: get/set/get_multi, get_cas/set_cas,
touch, incr/decr, delete, flush and a stampede-protected fetch.
Suitable for single-process deployments and tests.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..capabilities import maybe_await

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    expires_at: float | None
    cas: int


class MemoryCacheBackend:
    """
    Process-local store in the shape of a memcached client.

    Behavior:
    - least recently used entry is dropped at max_size
    - Per-key TTL support (None = default TTL, 0 = no expiry)
    - CAS tokens, increasing on every write
    - Counters seeded with a default value when absent
    - fetch runs the compute step once per key across concurrent callers
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: int = 3600,
        namespace: str = "dwc",
    ):
        """
        Args:
            max_size: Entry limit
            default_ttl: Seconds, 0 for no expiry
            namespace: Key prefix
        """
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.namespace = namespace

        self._cache: OrderedDict[str, _Entry] = OrderedDict()
        self._pending: dict[str, asyncio.Event] = {}
        self._cas_counter = 0

        # Stats
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._evictions = 0

        self._lock = asyncio.Lock()

    def _make_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def _expiry(self, ttl: int | None) -> float | None:
        if ttl is None:
            ttl = self.default_ttl
        return time.time() + ttl if ttl > 0 else None

    @staticmethod
    def _is_expired(expiry: float | None, now: float | None = None) -> bool:
        if expiry is None:
            return False
        return (now or time.time()) > expiry

    def _live_entry(self, cache_key: str) -> _Entry | None:
        """Return the entry if present and unexpired. Caller holds the lock."""
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        if self._is_expired(entry.expires_at):
            del self._cache[cache_key]
            return None
        return entry

    def _store(self, cache_key: str, value: Any, ttl: int | None) -> int:
        """Insert or replace an entry and return its CAS token. Caller holds the lock."""
        if cache_key not in self._cache and len(self._cache) >= self.max_size:
            evicted_key, _ = self._cache.popitem(last=False)
            self._evictions += 1
            logger.debug(f"Dropped least recently used key {evicted_key}", extra={"namespace": self.namespace})

        self._cas_counter += 1
        self._cache[cache_key] = _Entry(value, self._expiry(ttl), self._cas_counter)
        self._cache.move_to_end(cache_key)
        self._sets += 1
        return self._cas_counter

    # ------------ Reads ------------

    async def get(self, key: str) -> Any | None:
        if not key:
            logger.warning("Empty key passed to get")
            return None

        async with self._lock:
            cache_key = self._make_key(key)
            entry = self._live_entry(cache_key)
            if entry is None:
                self._misses += 1
                return None

            self._cache.move_to_end(cache_key)
            self._hits += 1
            return entry.value

    async def get_multi(self, *keys: str) -> dict[str, Any]:
        """Retrieve multiple values; missing keys are omitted."""
        result: dict[str, Any] = {}
        async with self._lock:
            for key in keys:
                if not key:
                    continue
                cache_key = self._make_key(key)
                entry = self._live_entry(cache_key)
                if entry is None:
                    self._misses += 1
                    continue
                self._cache.move_to_end(cache_key)
                self._hits += 1
                result[key] = entry.value
        return result

    async def get_cas(self, key: str) -> tuple[Any, int] | None:
        """Return ``(value, cas)`` for ``key``, or None if absent."""
        async with self._lock:
            entry = self._live_entry(self._make_key(key))
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.value, entry.cas

    # ------------ Writes ------------

    async def set(self, key: str, value: Any, ttl: int | None = None, **options: Any) -> bool:
        if not key:
            logger.warning("Empty key passed to set")
            return False

        async with self._lock:
            self._store(self._make_key(key), value, ttl)
            return True

    async def set_cas(self, key: str, value: Any, cas: int, ttl: int | None = None, **options: Any) -> int | None:
        """
        Store ``value`` only if the entry's CAS token still equals ``cas``.

        A ``cas`` of 0 stores unconditionally.

        Returns:
            The new CAS token, or None if the token was stale or the key is gone
        """
        async with self._lock:
            cache_key = self._make_key(key)
            if cas:
                entry = self._live_entry(cache_key)
                if entry is None or entry.cas != cas:
                    logger.debug(f"CAS mismatch for key '{key}'", extra={"key": key, "cas": cas})
                    return None
            return self._store(cache_key, value, ttl)

    async def touch(self, key: str, ttl: int | None = None) -> bool:
        """Reset the expiry of ``key``."""
        async with self._lock:
            entry = self._live_entry(self._make_key(key))
            if entry is None:
                return False
            entry.expires_at = self._expiry(ttl)
            return True

    async def incr(self, key: str, amount: int = 1, ttl: int | None = None, default: int | None = None) -> int | None:
        """
        Increment a counter.

        An absent key is initialised to ``default`` (not ``default + amount``);
        with no default the call returns None.
        """
        return await self._apply_delta(key, amount, ttl, default)

    async def decr(self, key: str, amount: int = 1, ttl: int | None = None, default: int | None = None) -> int | None:
        """Decrement a counter, never going below zero."""
        return await self._apply_delta(key, -amount, ttl, default)

    async def _apply_delta(self, key: str, delta: int, ttl: int | None, default: int | None) -> int | None:
        async with self._lock:
            cache_key = self._make_key(key)
            entry = self._live_entry(cache_key)
            if entry is None:
                if default is None:
                    return None
                self._store(cache_key, int(default), ttl)
                return int(default)

            value = max(0, int(entry.value) + delta)
            self._cas_counter += 1
            entry.value = value
            entry.cas = self._cas_counter
            return value

    async def delete(self, key: str) -> bool:
        if not key:
            logger.warning("Empty key passed to delete")
            return False

        async with self._lock:
            cache_key = self._make_key(key)
            if cache_key in self._cache:
                del self._cache[cache_key]
                self._deletes += 1
                return True
            return False

    async def flush(self) -> bool:
        """Drop every entry of this store."""
        async with self._lock:
            size = len(self._cache)
            self._cache.clear()
            logger.info(f"Flushed {size} entries from memory cache namespace '{self.namespace}'")
            return True

    # ------------ Read-through ------------

    async def fetch(
        self,
        key: str,
        compute: Callable[[], Any],
        expires_in: int | None = None,
        race_condition_ttl: int | None = None,
        force: bool = False,
        **options: Any,
    ) -> Any:
        """
        Return the cached value, computing and storing it on a miss.

        Only one caller computes a given key at a time; the others wait for
        its result. Inside the ``race_condition_ttl`` window after expiry,
        waiting callers get the stale value instead of blocking.
        """
        cache_key = self._make_key(key)
        while True:
            async with self._lock:
                now = time.time()
                entry = self._cache.get(cache_key)
                if entry is not None and not force and not self._is_expired(entry.expires_at, now):
                    self._cache.move_to_end(cache_key)
                    self._hits += 1
                    return entry.value

                pending = self._pending.get(cache_key)
                if pending is None:
                    pending = asyncio.Event()
                    self._pending[cache_key] = pending
                    self._misses += 1
                    break

                if (
                    entry is not None
                    and race_condition_ttl
                    and entry.expires_at is not None
                    and now <= entry.expires_at + race_condition_ttl
                ):
                    return entry.value

            await pending.wait()
            force = False

        try:
            value = await maybe_await(compute())
            async with self._lock:
                self._store(cache_key, value, expires_in)
            return value
        finally:
            async with self._lock:
                self._pending.pop(cache_key, None)
            pending.set()

    # ------------ Housekeeping ------------

    async def get_stats(self) -> dict[str, Any]:
        async with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

            return {
                "backend": "memory",
                "size": len(self._cache),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(hit_rate, 2),
                "sets": self._sets,
                "deletes": self._deletes,
                "evictions": self._evictions,
                "namespace": self.namespace,
            }

    async def close(self) -> None:
        logger.debug(f"Closed memory store for namespace '{self.namespace}'")
