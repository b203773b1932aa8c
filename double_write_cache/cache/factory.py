"""
Double Write Cache — Store Factory

Builds backing stores and double write clients from configuration.

- The backend of each store comes from PRIMARY_CACHE_BACKEND /
  SECONDARY_CACHE_BACKEND (memory|redis), or is Redis when a REDIS_URL is set
- redis is imported only when a Redis store is requested
- Stores are registered by name; closing them is the factory's job, since
  the client never owns its stores

Examples:
    from double_write_cache.cache.factory import create_client

    client = create_client()  # stores from the environment

    cfg = DoubleWriteConfig(primary=CacheConfig(namespace="a"), secondary=CacheConfig(namespace="b"))
    client = create_client(cfg)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..config import CacheBackend, CacheConfig, DoubleWriteConfig, get_config
from ..errors import ConfigurationError
from .backends.memory import MemoryCacheBackend
from .client import DoubleWriteClient

logger = logging.getLogger(__name__)

# name -> store, for every store built here
_stores: dict[str, Any] = {}


def _build_memory(config: CacheConfig) -> MemoryCacheBackend:
    return MemoryCacheBackend(
        max_size=config.max_size,
        default_ttl=config.ttl_seconds,
        namespace=config.namespace,
    )


def _build_redis(config: CacheConfig) -> Any:
    if not config.redis_url:
        raise ConfigurationError(
            "A redis URL must be set when the cache backend is redis",
            details={"backend": "redis", "namespace": config.namespace},
        )

    try:
        from .backends.redis import RedisCacheBackend
    except ImportError as e:
        logger.error(
            f"redis package unavailable for namespace '{config.namespace}': {e}",
            extra={"namespace": config.namespace, "error": str(e)},
        )
        raise ConfigurationError(
            "The redis backend needs the redis package (pip install 'redis>=5.0.0')",
            details={"backend": "redis", "error": str(e)},
        ) from e

    return RedisCacheBackend(
        redis_url=config.redis_url,
        namespace=config.namespace,
        default_ttl=config.ttl_seconds,
        max_connections=config.redis_max_connections,
        socket_timeout=config.redis_socket_timeout,
    )


_BUILDERS: dict[str, Callable[[CacheConfig], Any]] = {
    CacheBackend.MEMORY.value: _build_memory,
    CacheBackend.REDIS.value: _build_redis,
}


def create_cache(config: CacheConfig, name: str = "default") -> Any:
    """
    Build a backing store, or return the one already registered as ``name``.

    Args:
        config: Store configuration
        name: Registry name of the store

    Returns:
        The backing store

    Raises:
        ConfigurationError: If the backend is unknown or cannot be built
    """
    existing = _stores.get(name)
    if existing is not None:
        return existing

    backend = str(getattr(config.backend, "value", config.backend))
    builder = _BUILDERS.get(backend)
    if builder is None:
        raise ConfigurationError(
            f"Unknown cache backend: {backend}",
            details={"backend": backend, "supported": sorted(_BUILDERS)},
        )

    store = builder(config)
    _stores[name] = store
    logger.info(
        f"Registered {backend} store '{name}' (namespace '{config.namespace}')",
        extra={"store_name": name, "backend": backend, "namespace": config.namespace},
    )
    return store


def create_client(config: DoubleWriteConfig | None = None) -> DoubleWriteClient:
    """
    Build a DoubleWriteClient from configuration.

    The stores are registered as ``"primary"`` and ``"secondary"``.
    """
    if config is None:
        config = get_config()

    primary = create_cache(config.primary, name="primary")
    secondary = None
    if config.secondary is not None:
        secondary = create_cache(config.secondary, name="secondary")

    return DoubleWriteClient(primary, secondary, mirror_policy=config.mirror_policy)


def get_cache(name: str = "primary") -> Any:
    """
    Return a registered store, building it from the global configuration if needed.

    ``"secondary"`` uses the secondary settings when configured; every other
    name uses the primary settings.
    """
    if name in _stores:
        return _stores[name]

    config = get_config()
    if name == "secondary" and config.secondary is not None:
        return create_cache(config.secondary, name=name)
    return create_cache(config.primary, name=name)


async def close_all_caches() -> None:
    """Close every registered store and empty the registry."""
    for name, store in list(_stores.items()):
        try:
            await store.close()
        except Exception as e:
            # keep closing the remaining stores
            logger.error(
                f"Failed to close store '{name}': {e}",
                extra={"store_name": name, "error": str(e)},
                exc_info=True,
            )
    logger.info(f"Closed {len(_stores)} store(s)")
    _stores.clear()


def reset_cache_factory() -> None:
    """Forget registered stores without closing them. Test use only."""
    _stores.clear()


def list_cache_instances() -> list[str]:
    """Names of the registered stores."""
    return list(_stores)
