"""
Double Write Cache — Cache Module

One logical cache interface over a primary store and an optional
write-only secondary store.

- capabilities.py: resolves semantic operations onto store method shapes
- client.py: the DoubleWriteClient facade and its propagation rules
- mirror.py: best-effort secondary step and its failure policy
- factory.py: builds backends and clients from configuration
- backends/: memory (memcached shape) and Redis (store shape) backends

Usage:
    from double_write_cache.cache import create_client

    client = create_client()
    await client.write("key", "value", expires_in=3600)
    value = await client.read("key")
"""

from .capabilities import Capability, StoreCapabilities, resolve
from .client import DoubleWriteClient
from .factory import (
    close_all_caches,
    create_cache,
    create_client,
    get_cache,
    list_cache_instances,
    reset_cache_factory,
)
from .mirror import MirrorPolicy

__all__ = [
    # Client
    "DoubleWriteClient",
    "MirrorPolicy",
    # Capability resolution
    "Capability",
    "StoreCapabilities",
    "resolve",
    # Factory functions
    "create_cache",
    "create_client",
    "get_cache",
    "close_all_caches",
    "list_cache_instances",
    "reset_cache_factory",
]
