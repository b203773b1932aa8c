"""
Double Write Cache — Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import os
from collections.abc import Generator

import pytest

from double_write_cache.cache import reset_cache_factory
from double_write_cache.cache.backends.memory import MemoryCacheBackend
from double_write_cache.config import loader

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


@pytest.fixture
def test_redis_url() -> str:
    """Get Redis URL for testing (database 15 for isolation)."""
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Drop the config singleton and factory registry around each test."""
    loader._config_instance = None
    reset_cache_factory()
    yield
    loader._config_instance = None
    reset_cache_factory()


@pytest.fixture
def primary_store() -> MemoryCacheBackend:
    """Memory backend acting as the primary store."""
    return MemoryCacheBackend(max_size=100, default_ttl=3600, namespace="primary")


@pytest.fixture
def secondary_store() -> MemoryCacheBackend:
    """Memory backend acting as the secondary (mirror) store."""
    return MemoryCacheBackend(max_size=100, default_ttl=3600, namespace="secondary")


@pytest.fixture
def mock_env_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for a mirrored memory configuration."""
    monkeypatch.setenv("PRIMARY_CACHE_BACKEND", "memory")
    monkeypatch.setenv("PRIMARY_CACHE_MAX_SIZE", "100")
    monkeypatch.setenv("PRIMARY_CACHE_NAMESPACE", "test-primary")
    monkeypatch.setenv("SECONDARY_CACHE_BACKEND", "memory")
    monkeypatch.setenv("SECONDARY_CACHE_NAMESPACE", "test-secondary")
    monkeypatch.setenv("MIRROR_POLICY", "log")
