"""
Double Write Cache — Error Type Tests
"""

from double_write_cache.cache.backends.memory import MemoryCacheBackend
from double_write_cache.errors import (
    CacheError,
    ConfigurationError,
    DoubleWriteCacheError,
    ErrorCode,
    StoreMismatchError,
    UnsupportedOperationError,
    extract_error_code,
)
from tests.mocks.fake_stores import BareStore


class TestErrors:
    """Structured error payloads and code mapping."""

    def test_to_dict(self) -> None:
        error = ConfigurationError("bad value", details={"field": "namespace"})
        assert error.to_dict() == {
            "error": "ConfigurationError",
            "message": "bad value",
            "details": {"field": "namespace"},
        }
        assert str(error) == "bad value"

    def test_store_mismatch_message(self) -> None:
        """The message names both store types."""
        error = StoreMismatchError(MemoryCacheBackend(), BareStore())

        assert error.message == "different cache store instance. MemoryCacheBackend != BareStore"
        assert error.details == {"primary_type": "MemoryCacheBackend", "secondary_type": "BareStore"}
        assert isinstance(error, CacheError)

    def test_unsupported_operation(self) -> None:
        error = UnsupportedOperationError("touch", BareStore(), details={"role": "primary"})

        assert error.capability == "touch"
        assert error.store_type == "BareStore"
        assert error.details == {"role": "primary", "capability": "touch", "store_type": "BareStore"}

    def test_extract_error_code(self) -> None:
        assert extract_error_code(StoreMismatchError(1, "a")) == ErrorCode.STORE_MISMATCH
        assert extract_error_code(UnsupportedOperationError("read", 1)) == ErrorCode.UNSUPPORTED_OPERATION
        assert extract_error_code(CacheError("boom")) == ErrorCode.CACHE_FAILURE
        assert extract_error_code(ConfigurationError("boom")) == ErrorCode.INVALID_CONFIGURATION
        assert extract_error_code(DoubleWriteCacheError("boom")) == ErrorCode.INTERNAL_ERROR
        assert extract_error_code(ValueError("boom")) == ErrorCode.INTERNAL_ERROR
