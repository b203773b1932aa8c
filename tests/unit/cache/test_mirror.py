"""
Double Write Cache — Mirror Step Tests
"""

import logging

import pytest

from double_write_cache.cache.capabilities import Capability, StoreCapabilities
from double_write_cache.cache.mirror import Mirror, MirrorPolicy
from tests.mocks.fake_stores import BareStore, FlakyStore


class TestMirror:
    """Test suite for Mirror.run()."""

    async def test_returns_secondary_result(self) -> None:
        """A supported capability runs and returns the secondary's result."""
        store = BareStore()
        mirror = Mirror(StoreCapabilities.probe(store))

        assert await mirror.run(Capability.WRITE, "k", "v") is True
        assert store.data == {"k": "v"}

    async def test_unsupported_capability_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        """A missing capability is skipped with a debug log."""
        mirror = Mirror(StoreCapabilities.probe(BareStore()))

        with caplog.at_level(logging.DEBUG, logger="double_write_cache.cache.mirror"):
            assert await mirror.run(Capability.TOUCH, "k", 10) is None

        assert "does not support touch" in caplog.text

    async def test_raise_policy_propagates_unchanged(self) -> None:
        """The store's own exception reaches the caller."""
        mirror = Mirror(StoreCapabilities.probe(FlakyStore(failing=True)), MirrorPolicy.RAISE)

        with pytest.raises(ConnectionError, match="store unavailable"):
            await mirror.run(Capability.DELETE, "k")

    async def test_log_policy_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """The log policy records a warning and returns None."""
        mirror = Mirror(StoreCapabilities.probe(FlakyStore(failing=True)), MirrorPolicy.LOG)

        with caplog.at_level(logging.WARNING, logger="double_write_cache.cache.mirror"):
            assert await mirror.run(Capability.WRITE, "k", "v") is None

        assert any(r.levelno == logging.WARNING and "Mirror set" in r.getMessage() for r in caplog.records)

    async def test_ignore_policy_is_quiet(self, caplog: pytest.LogCaptureFixture) -> None:
        """The ignore policy logs nothing above debug."""
        mirror = Mirror(StoreCapabilities.probe(FlakyStore(failing=True)), "ignore")  # type: ignore[arg-type]

        with caplog.at_level(logging.INFO, logger="double_write_cache.cache.mirror"):
            assert await mirror.run(Capability.INCREMENT, "n", 1, initial=1) is None

        assert caplog.records == []

    async def test_run_with_overrides_policy(self) -> None:
        """run_with handles a failure under the given policy, not the configured one."""
        mirror = Mirror(StoreCapabilities.probe(FlakyStore(failing=True)), MirrorPolicy.RAISE)

        assert await mirror.run_with(MirrorPolicy.LOG, Capability.DECREMENT, "n", 1, initial=0) is None
        with pytest.raises(ConnectionError):
            await mirror.run(Capability.DECREMENT, "n", 1, initial=0)
