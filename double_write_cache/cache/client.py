"""
Double Write Cache — Client

One logical cache over two backing stores: a primary store used for reads and
writes, and an optional secondary store that only receives mirrored writes.

Propagation rules:
- Reads (read, read_multi, read_cas) only ever touch the primary store.
- write, delete, touch, increment and decrement always mirror to the
  secondary after the primary call, whatever the primary returned.
- A failing secondary increment or decrement is logged, even under the
  raise policy.
- write_cas mirrors (as a plain write) only when the primary CAS succeeded.
- flush hits the secondary first, and only with a method the primary has.
- fetch with race_condition_ttl hands the already computed result to the
  secondary, so the compute step runs at most once per primary computation.

Example:
    client = DoubleWriteClient(MemoryCacheBackend(), MemoryCacheBackend(namespace="mirror"))
    await client.write("greeting", "hello", expires_in=60)
    value = await client.fetch("report", build_report, race_condition_ttl=10)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..errors import StoreMismatchError
from .capabilities import Capability, StoreCapabilities, maybe_await
from .mirror import Mirror, MirrorPolicy

logger = logging.getLogger(__name__)


class DoubleWriteClient:
    """
    Cache facade writing to a primary store and mirroring to a secondary.

    The stores are not owned by the client: it never closes them.
    """

    def __init__(
        self,
        primary: Any,
        secondary: Any | None = None,
        mirror_policy: MirrorPolicy | str = MirrorPolicy.RAISE,
    ):
        """
        Initialize the client.

        Args:
            primary: Store used for reads and writes
            secondary: Optional write-only mirror store, same type as primary
            mirror_policy: Handling of exceptions raised by the secondary

        Raises:
            StoreMismatchError: If secondary is not the same type as primary
        """
        if secondary is not None and type(primary) is not type(secondary):
            error = StoreMismatchError(primary, secondary)
            logger.error(error.message, extra=error.details)
            raise error

        self._mirror_policy = MirrorPolicy(mirror_policy)
        self.primary = primary
        self.secondary = secondary

    @property
    def mirror_policy(self) -> MirrorPolicy:
        return self._mirror_policy

    @mirror_policy.setter
    def mirror_policy(self, policy: MirrorPolicy | str) -> None:
        self._mirror_policy = MirrorPolicy(policy)
        if self._mirror is not None:
            self._mirror.policy = self._mirror_policy

    def _counter_policy(self) -> MirrorPolicy:
        # counter mirror failures are never raised
        if self._mirror_policy is MirrorPolicy.RAISE:
            return MirrorPolicy.LOG
        return self._mirror_policy

    # ------------ Store handles ------------
    # Re-assigning a handle re-probes its capabilities. It does not re-check
    # that primary and secondary are the same type.

    @property
    def primary(self) -> Any:
        return self._primary

    @primary.setter
    def primary(self, store: Any) -> None:
        self._primary = store
        self._capabilities = StoreCapabilities.probe(store)

    @property
    def secondary(self) -> Any | None:
        return self._secondary

    @secondary.setter
    def secondary(self, store: Any | None) -> None:
        self._secondary = store
        self._mirror = Mirror(StoreCapabilities.probe(store), self.mirror_policy) if store is not None else None

    # ------------ Reads (primary only) ------------

    async def read(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss."""
        return await self._capabilities.require(Capability.READ)(key)

    async def read_multi(self, *keys: str) -> dict[str, Any]:
        """Return a mapping of the keys found in the primary store."""
        return await self._capabilities.require(Capability.READ_MULTI)(*keys)

    async def read_cas(self, key: str) -> Any | None:
        """
        Return the primary's ``(value, cas)`` pair for ``key``.

        Returns None when the primary exposes no CAS read.
        """
        operation = self._capabilities.get(Capability.READ_CAS)
        if operation is None:
            return None
        return await operation(key)

    # ------------ Writes ------------

    async def write(self, key: str, value: Any, **options: Any) -> Any:
        """
        Store ``value`` under ``key`` in the primary, then in the secondary.

        Args:
            key: Cache key
            value: Value to store
            **options: Store options, e.g. ``expires_in`` (seconds)

        Returns:
            The primary store's result
        """
        result = await self._capabilities.require(Capability.WRITE)(key, value, **options)
        if self._mirror is not None:
            await self._mirror.run(Capability.WRITE, key, value, **options)
        return result

    async def delete(self, key: str) -> Any:
        """Delete ``key`` from both stores, returning the primary's result."""
        result = await self._capabilities.require(Capability.DELETE)(key)
        if self._mirror is not None:
            await self._mirror.run(Capability.DELETE, key)
        return result

    async def touch(self, key: str, ttl: int | None = None) -> Any:
        """Refresh the TTL of ``key`` in both stores, returning the primary's result."""
        result = await self._capabilities.require(Capability.TOUCH)(key, ttl)
        if self._mirror is not None:
            await self._mirror.run(Capability.TOUCH, key, ttl)
        return result

    async def write_cas(self, key: str, value: Any, cas: Any = 0, **options: Any) -> Any:
        """
        Compare-and-swap ``key`` on the primary store.

        The secondary never produced a comparable token, so on success it
        receives an unconditional write instead of a CAS write.

        Returns:
            The primary's new CAS token, or a falsy marker if ``cas`` was stale
        """
        token = await self._capabilities.require(Capability.WRITE_CAS)(key, value, cas, **options)
        if self._mirror is not None and token is not None and token is not False:
            await self._mirror.run(Capability.WRITE, key, value, **options)
        return token

    async def increment(self, key: str, amount: int = 1, **options: Any) -> Any:
        """
        Increment a counter, seeding it with ``initial`` (default ``amount``) if absent.

        Only the primary's value is returned. The secondary's value is discarded
        and its failure is logged, never raised.
        """
        options = {**options}
        options.setdefault("initial", amount)
        value = await self._capabilities.require(Capability.INCREMENT)(key, amount, **options)
        if self._mirror is not None:
            await self._mirror.run_with(self._counter_policy(), Capability.INCREMENT, key, amount, **options)
        return value

    async def decrement(self, key: str, amount: int = 1, **options: Any) -> Any:
        """
        Decrement a counter, seeding it with ``initial`` (default ``0``) if absent.

        Only the primary's value is returned. The secondary's value is discarded
        and its failure is logged, never raised.
        """
        options = {**options}
        options.setdefault("initial", 0)
        value = await self._capabilities.require(Capability.DECREMENT)(key, amount, **options)
        if self._mirror is not None:
            await self._mirror.run_with(self._counter_policy(), Capability.DECREMENT, key, amount, **options)
        return value

    async def flush(self) -> bool:
        """
        Flush both stores, trying ``flush`` first and ``clear`` as fallback.

        Returns:
            True if either attempt succeeded on the primary
        """
        if await self._flush_by(Capability.FLUSH):
            return True
        return bool(await self._flush_by(Capability.CLEAR))

    async def _flush_by(self, capability: Capability) -> Any:
        operation = self._capabilities.get(capability)
        if operation is None:
            return False
        if self._mirror is not None:
            await self._mirror.run(capability)
        return await operation()

    # ------------ Read-through ------------

    async def fetch(self, key: str, compute: Callable[[], Any], **options: Any) -> Any:
        """
        Return the cached value for ``key``, computing and storing it on a miss.

        Args:
            key: Cache key
            compute: Zero-argument callable (sync or async) producing the value
            **options: ``force`` to recompute, ``race_condition_ttl`` to use the
                primary store's stampede-protected fetch, ``expires_in``, ...

        Raises:
            UnsupportedOperationError: If the primary cannot fetch (with
                race_condition_ttl) or read (without)
        """
        if options.get("force"):
            await self._capabilities.require(Capability.DELETE)(key)

        if options.get("race_condition_ttl"):
            return await self._fetch_race_condition(key, compute, **options)

        value = await self._capabilities.require(Capability.READ)(key)
        if value is None:
            value = await maybe_await(compute())
            await self.write(key, value, **options)
        return value

    async def _fetch_race_condition(self, key: str, compute: Callable[[], Any], **options: Any) -> Any:
        result = await self._capabilities.require(Capability.FETCH)(key, compute, **options)
        if self._mirror is not None:
            await self._mirror.run(Capability.FETCH, key, lambda: result, **options)
        return result

    # ------------ Aliases ------------

    get = read
    get_multi = read_multi
    get_cas = read_cas
    set = write
    set_cas = write_cas
    incr = increment
    decr = decrement
