"""
Double Write Cache — Redis Store

Async Redis store with the Rails cache-store method shape: read, write,
read_multi, read_cas, write_cas, touch, increment, decrement, delete, clear
and fetch. Values are JSON; every key lives under ``<namespace>:``.

Example:
    store = RedisCacheBackend(redis_url="redis://localhost:6379/0", namespace="dwc")
    await store.write("greeting", {"msg": "hello"}, expires_in=60)
    await store.read("greeting")
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Callable
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import WatchError

from ..capabilities import maybe_await

logger = logging.getLogger(__name__)


class RedisCacheBackend:
    """
    Redis-backed store.

    ``expires_in`` of None means the default TTL, 0 means no expiry. CAS
    tokens are SHA-1 digests of the stored JSON, so writing back an identical
    value keeps the token valid. redis-py errors are not caught.
    """

    def __init__(
        self,
        redis_url: str,
        namespace: str = "dwc",
        default_ttl: int = 3600,
        max_connections: int = 10,
        socket_timeout: int = 5,
        decode_responses: bool = True,
    ) -> None:
        """
        Args:
            redis_url: redis:// or rediss:// connection URL
            namespace: Key prefix
            default_ttl: Seconds, 0 for no expiry
            max_connections: Pool size
            socket_timeout: Seconds
            decode_responses: Return str instead of bytes
        """
        if not redis_url:
            raise ValueError("redis_url is required")

        self.namespace = namespace.strip() or "dwc"
        self.default_ttl = max(0, int(default_ttl))
        self._counters = {"hits": 0, "misses": 0, "writes": 0, "deletes": 0}

        # connects on first command
        self._client = Redis.from_url(  # type: ignore[call-overload]
            url=redis_url,
            decode_responses=decode_responses,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
        )

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    @staticmethod
    def _dump(value: Any) -> str:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))

    def _load(self, raw: str | bytes) -> Any:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        try:
            return json.loads(text)
        except ValueError:
            logger.warning(f"Non-JSON payload in namespace '{self.namespace}', returning it as-is")
            return text

    @staticmethod
    def _token(raw: str | bytes) -> str:
        return hashlib.sha1(raw.encode("utf-8") if isinstance(raw, str) else raw).hexdigest()

    def _expiry(self, expires_in: int | None) -> int | None:
        seconds = self.default_ttl if expires_in is None else int(expires_in)
        return seconds if seconds > 0 else None

    def _count_lookup(self, raw: Any) -> None:
        self._counters["misses" if raw is None else "hits"] += 1

    async def read(self, key: str) -> Any | None:
        raw = await self._client.get(self._key(key))
        self._count_lookup(raw)
        return None if raw is None else self._load(raw)

    async def read_multi(self, *keys: str) -> dict[str, Any]:
        """Read several keys with one MGET; missing keys are left out."""
        if not keys:
            return {}

        found: dict[str, Any] = {}
        for key, raw in zip(keys, await self._client.mget([self._key(k) for k in keys]), strict=True):
            self._count_lookup(raw)
            if raw is not None:
                found[key] = self._load(raw)
        return found

    async def read_cas(self, key: str) -> tuple[Any, str] | None:
        """``(value, token)`` for ``key``, or None when absent."""
        raw = await self._client.get(self._key(key))
        self._count_lookup(raw)
        if raw is None:
            return None
        return self._load(raw), self._token(raw)

    async def write(self, key: str, value: Any, expires_in: int | None = None, **options: Any) -> bool:
        stored = bool(await self._client.set(self._key(key), self._dump(value), ex=self._expiry(expires_in)))
        if stored:
            self._counters["writes"] += 1
        return stored

    async def write_cas(
        self,
        key: str,
        value: Any,
        cas: str | None = None,
        expires_in: int | None = None,
        **options: Any,
    ) -> str | None:
        """
        Write ``value`` only while the stored payload still matches ``cas``.

        The check and the write run in one WATCH/MULTI transaction. An empty
        ``cas`` writes unconditionally.

        Returns:
            The new token, or None if ``cas`` was stale or the key changed
            during the transaction
        """
        name = self._key(key)
        payload = self._dump(value)

        async with self._client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(name)
                if cas:
                    current = await pipe.get(name)
                    if current is None or self._token(current) != cas:
                        await pipe.unwatch()
                        logger.debug(f"Stale CAS token for key '{key}'", extra={"key": key})
                        return None
                pipe.multi()
                pipe.set(name, payload, ex=self._expiry(expires_in))
                await pipe.execute()
            except WatchError:
                logger.debug(f"Concurrent change to key '{key}' aborted CAS write", extra={"key": key})
                return None

        self._counters["writes"] += 1
        return self._token(payload)

    async def touch(self, key: str, ttl: int | None = None) -> bool:
        """Give an existing key a new expiry (PERSIST when it resolves to none)."""
        name = self._key(key)
        seconds = self._expiry(ttl)
        if seconds is not None:
            return bool(await self._client.expire(name, seconds))
        await self._client.persist(name)
        return bool(await self._client.exists(name))

    async def increment(
        self,
        key: str,
        amount: int = 1,
        initial: int | None = None,
        expires_in: int | None = None,
        **options: Any,
    ) -> int:
        """
        Add ``amount`` to a counter.

        When the key is absent and ``initial`` is given, the counter is set to
        ``initial`` and that value is returned.
        """
        return await self._add(key, amount, initial, expires_in)

    async def decrement(
        self,
        key: str,
        amount: int = 1,
        initial: int | None = None,
        expires_in: int | None = None,
        **options: Any,
    ) -> int:
        return await self._add(key, -amount, initial, expires_in)

    async def _add(self, key: str, delta: int, initial: int | None, expires_in: int | None) -> int:
        name = self._key(key)
        if initial is not None and await self._client.set(name, int(initial), ex=self._expiry(expires_in), nx=True):
            return int(initial)
        return int(await self._client.incrby(name, delta))

    async def delete(self, key: str) -> bool:
        removed = bool(await self._client.delete(self._key(key)))
        if removed:
            self._counters["deletes"] += 1
        return removed

    async def clear(self) -> bool:
        """Delete every key of this namespace; other namespaces are untouched."""
        removed = 0
        batch: list[Any] = []
        async for name in self._client.scan_iter(match=f"{self.namespace}:*", count=500):
            batch.append(name)
            if len(batch) >= 500:
                removed += await self._client.delete(*batch)
                batch = []
        if batch:
            removed += await self._client.delete(*batch)

        self._counters["deletes"] += removed
        logger.info(
            f"Removed {removed} key(s) from namespace '{self.namespace}'",
            extra={"namespace": self.namespace, "removed": removed},
        )
        return True

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
        Read-through lookup.

        With ``race_condition_ttl`` the caller that recomputes holds
        ``<key>:lock`` for that many seconds. Callers that miss the lock get
        the last computed value from ``<key>:stale``, which outlives the
        entry by ``race_condition_ttl`` seconds, or compute themselves if
        there is none yet.
        """
        if not force:
            cached = await self.read(key)
            if cached is not None:
                return cached

        if not race_condition_ttl:
            value = await maybe_await(compute())
            await self.write(key, value, expires_in=expires_in)
            return value

        name = self._key(key)
        window = int(race_condition_ttl)
        locked = await self._client.set(f"{name}:lock", "1", nx=True, ex=window)
        if not locked:
            stale = await self._client.get(f"{name}:stale")
            if stale is not None:
                return self._load(stale)

        try:
            value = await maybe_await(compute())
            await self.write(key, value, expires_in=expires_in)
            seconds = self._expiry(expires_in)
            await self._client.set(f"{name}:stale", self._dump(value), ex=seconds + window if seconds else None)
            return value
        finally:
            if locked:
                await self._client.delete(f"{name}:lock")

    async def get_stats(self) -> dict[str, Any]:
        lookups = self._counters["hits"] + self._counters["misses"]
        stats: dict[str, Any] = {
            "backend": "redis",
            "namespace": self.namespace,
            "default_ttl": self.default_ttl,
            **self._counters,
            "hit_rate": round(self._counters["hits"] * 100 / lookups, 2) if lookups else 0.0,
        }
        try:
            stats["connected"] = bool(await self._client.ping())
            stats["redis_version"] = (await self._client.info(section="server")).get("redis_version")
        except Exception as e:
            # INFO may be disabled on managed Redis
            stats["connected"] = False
            logger.warning(f"Redis stats unavailable: {e}", extra={"namespace": self.namespace, "error": str(e)})
        return stats

    async def close(self) -> None:
        await self._client.aclose()
        logger.info(f"Closed Redis store for namespace '{self.namespace}'", extra={"namespace": self.namespace})
