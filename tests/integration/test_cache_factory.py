"""
Double Write Cache — Cache Factory Integration Tests

Builds backends and clients from configuration and drives them end to end.
"""

from pathlib import Path

import pytest

from double_write_cache.cache import (
    DoubleWriteClient,
    close_all_caches,
    create_cache,
    create_client,
    get_cache,
    list_cache_instances,
)
from double_write_cache.cache.backends.memory import MemoryCacheBackend
from double_write_cache.config import CacheBackend, CacheConfig, DoubleWriteConfig, MirrorPolicy, load_config
from double_write_cache.errors import ConfigurationError


class TestCacheFactory:
    """Test suite for the cache factory."""

    def test_create_memory_cache(self) -> None:
        """Test creating a memory cache from config."""
        cache = create_cache(CacheConfig(max_size=50, ttl_seconds=60, namespace="factory"), name="test")

        assert isinstance(cache, MemoryCacheBackend)
        assert cache.max_size == 50
        assert cache.default_ttl == 60
        assert cache.namespace == "factory"
        assert list_cache_instances() == ["test"]

    def test_named_instances_are_reused(self) -> None:
        """The same name returns the registered instance."""
        first = create_cache(CacheConfig(), name="shared")
        second = create_cache(CacheConfig(namespace="ignored"), name="shared")

        assert first is second

    def test_redis_without_url(self) -> None:
        """A redis config lacking a URL cannot build a backend."""
        config = CacheConfig.model_construct(backend=CacheBackend.REDIS, redis_url=None, namespace="dwc")

        with pytest.raises(ConfigurationError, match="redis URL"):
            create_cache(config, name="broken")
        assert "broken" not in list_cache_instances()

    def test_unknown_backend(self) -> None:
        config = CacheConfig.model_construct(backend="memcached", namespace="dwc")

        with pytest.raises(ConfigurationError) as exc_info:
            create_cache(config, name="unknown")
        assert exc_info.value.details["supported"] == ["memory", "redis"]

    def test_create_client_from_config(self) -> None:
        """Primary and secondary are registered under their roles."""
        config = DoubleWriteConfig(
            primary=CacheConfig(namespace="a"),
            secondary=CacheConfig(namespace="b"),
            mirror_policy=MirrorPolicy.LOG,
        )

        client = create_client(config)

        assert isinstance(client, DoubleWriteClient)
        assert client.primary is get_cache("primary")
        assert client.secondary is get_cache("secondary")
        assert client.mirror_policy is MirrorPolicy.LOG

    def test_create_client_without_secondary(self) -> None:
        client = create_client(DoubleWriteConfig())

        assert client.secondary is None
        assert list_cache_instances() == ["primary"]

    async def test_client_from_env_mirrors_writes(self, mock_env_memory: None, tmp_path: Path) -> None:
        """A client built from the environment mirrors writes and reads only from the primary."""
        load_config(env_file=str(tmp_path / "missing.env"), reload=True)
        client = create_client()

        await client.write("user:1", {"name": "Ada"}, expires_in=60)
        assert await client.read("user:1") == {"name": "Ada"}
        assert await client.secondary.get("user:1") == {"name": "Ada"}

        await client.secondary.set("only-secondary", "x")
        assert await client.read("only-secondary") is None

        assert await client.increment("hits", 1) == 1
        assert await client.secondary.get("hits") == 1

        assert await client.delete("user:1") is True
        assert await client.secondary.get("user:1") is None

        assert await client.flush() is True
        assert (await client.secondary.get_stats())["size"] == 0

    async def test_close_all_caches(self) -> None:
        """Closing empties the registry."""
        create_client(DoubleWriteConfig(secondary=CacheConfig(namespace="mirror")))
        assert sorted(list_cache_instances()) == ["primary", "secondary"]

        await close_all_caches()

        assert list_cache_instances() == []
