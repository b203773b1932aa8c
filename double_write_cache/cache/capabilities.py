"""
Double Write Cache — Capability Resolver

Backing stores expose the same semantic operation under different names:
a memcached-style client has ``get``/``set``/``incr``, a Rails-style store has
``read``/``write``/``increment``, and some stores only reach CAS and touch
through an embedded protocol client. This module maps each semantic
capability onto the first matching method shape of a given store.

Resolution order is fixed per capability (see ``CANDIDATES``); the first
candidate present on the store wins. A capability with no matching candidate
resolves to ``None``.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import UnsupportedOperationError

logger = logging.getLogger(__name__)

# Attribute under which a store may embed its protocol-level client
SUB_CLIENT_ATTRIBUTE = "client"


class Capability(str, Enum):
    """Semantic cache operations a backing store may support."""

    READ = "read"
    WRITE = "write"
    READ_MULTI = "read_multi"
    READ_CAS = "read_cas"
    WRITE_CAS = "write_cas"
    TOUCH = "touch"
    INCREMENT = "increment"
    DECREMENT = "decrement"
    DELETE = "delete"
    FLUSH = "flush"
    CLEAR = "clear"
    FETCH = "fetch"


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it as-is."""
    if inspect.isawaitable(value):
        return await value
    return value


# ------------ Call conventions ------------
# Each invoker adapts the facade's uniform call (positional args + keyword
# options) to the concrete method signature of one candidate shape.


def _positional(method: Callable[..., Any], *args: Any, **options: Any) -> Any:
    return method(*args)


def _keywords(method: Callable[..., Any], *args: Any, **options: Any) -> Any:
    return method(*args, **options)


def _ttl_positional(method: Callable[..., Any], key: str, value: Any, **options: Any) -> Any:
    """set(key, value, ttl, **options)"""
    return method(key, value, options.get("expires_in"), **options)


def _cas_positional(method: Callable[..., Any], key: str, value: Any, cas: Any, **options: Any) -> Any:
    """set_cas(key, value, cas, ttl, **options)"""
    return method(key, value, cas, options.get("expires_in"), **options)


def _cas_embedded(method: Callable[..., Any], key: str, value: Any, cas: Any, **options: Any) -> Any:
    """write_cas(key, value, cas=..., **options)"""
    return method(key, value, **{**options, "cas": cas})


def _counter_positional(method: Callable[..., Any], key: str, amount: int, **options: Any) -> Any:
    """incr(key, amount, ttl, default)"""
    return method(key, amount, options.get("expires_in"), options.get("initial"))


def _fetch(method: Callable[..., Any], key: str, compute: Callable[[], Any], **options: Any) -> Any:
    return method(key, compute, **options)


@dataclass(frozen=True)
class Candidate:
    """One concrete method shape that can satisfy a capability."""

    method: str
    invoke: Callable[..., Any] = _positional
    via: str | None = None

    @property
    def path(self) -> str:
        return f"{self.via}.{self.method}" if self.via else self.method

    def lookup(self, store: Any) -> Callable[..., Any] | None:
        """Return the bound method on ``store`` (or its sub-client), if present."""
        target = store
        if self.via is not None:
            target = getattr(store, self.via, None)
            if target is None:
                return None
        method = getattr(target, self.method, None)
        return method if callable(method) else None


# Priority-ordered candidate shapes per capability
CANDIDATES: dict[Capability, tuple[Candidate, ...]] = {
    Capability.READ: (
        Candidate("get"),
        Candidate("read"),
    ),
    Capability.WRITE: (
        Candidate("set", _ttl_positional),
        Candidate("write", _keywords),
    ),
    Capability.READ_MULTI: (
        Candidate("get_multi"),
        Candidate("read_multi"),
    ),
    Capability.READ_CAS: (
        Candidate("get_cas"),
        Candidate("read_cas"),
        Candidate("get_cas", via=SUB_CLIENT_ATTRIBUTE),
    ),
    Capability.WRITE_CAS: (
        Candidate("set_cas", _cas_positional),
        Candidate("write_cas", _cas_embedded),
        Candidate("set_cas", _cas_positional, via=SUB_CLIENT_ATTRIBUTE),
    ),
    Capability.TOUCH: (
        Candidate("touch"),
        Candidate("touch", via=SUB_CLIENT_ATTRIBUTE),
    ),
    Capability.INCREMENT: (
        Candidate("incr", _counter_positional),
        Candidate("increment", _keywords),
    ),
    Capability.DECREMENT: (
        Candidate("decr", _counter_positional),
        Candidate("decrement", _keywords),
    ),
    Capability.DELETE: (Candidate("delete"),),
    Capability.FLUSH: (Candidate("flush"),),
    Capability.CLEAR: (Candidate("clear"),),
    Capability.FETCH: (Candidate("fetch", _fetch),),
}


@dataclass(frozen=True)
class Operation:
    """A capability resolved against a concrete store, callable uniformly."""

    capability: Capability
    name: str
    method: Callable[..., Any] = field(repr=False)
    invoke: Callable[..., Any] = field(repr=False)

    async def __call__(self, *args: Any, **options: Any) -> Any:
        return await maybe_await(self.invoke(self.method, *args, **options))


def resolve(store: Any, capability: Capability) -> Operation | None:
    """
    Resolve ``capability`` on ``store``.

    Args:
        store: Backing store instance
        capability: Semantic operation to look up

    Returns:
        The first matching Operation, or None if no candidate shape matches
    """
    for candidate in CANDIDATES[capability]:
        method = candidate.lookup(store)
        if method is not None:
            return Operation(capability, candidate.path, method, candidate.invoke)
    return None


class StoreCapabilities:
    """
    One-time capability detection for a store.

    Probing happens once when a store is bound to the client; calls then
    dispatch through the resolved operations without re-probing.
    """

    def __init__(self, store: Any, operations: dict[Capability, Operation]):
        self.store = store
        self._operations = operations

    @classmethod
    def probe(cls, store: Any) -> StoreCapabilities:
        operations = {}
        for capability in Capability:
            operation = resolve(store, capability)
            if operation is not None:
                operations[capability] = operation

        logger.debug(
            "Resolved %d capabilities for %s",
            len(operations),
            type(store).__qualname__,
            extra={
                "store_type": type(store).__qualname__,
                "capabilities": {cap.value: op.name for cap, op in operations.items()},
            },
        )
        return cls(store, operations)

    def supports(self, capability: Capability) -> bool:
        return capability in self._operations

    def get(self, capability: Capability) -> Operation | None:
        return self._operations.get(capability)

    def require(self, capability: Capability) -> Operation:
        """Return the resolved operation or raise UnsupportedOperationError."""
        operation = self._operations.get(capability)
        if operation is None:
            raise UnsupportedOperationError(capability.value, self.store)
        return operation
