"""
Double Write Cache - Core Error Types

Defines the exception hierarchy for the double write cache client.
All exceptions inherit from DoubleWriteCacheError for consistent handling.

Errors raised by the backing stores themselves are never wrapped here;
they reach the caller unchanged.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    Standard error codes for structured error reporting.
    """

    # Construction / configuration
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    STORE_MISMATCH = "STORE_MISMATCH"

    # Capability resolution
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"

    # Cache errors
    CACHE_FAILURE = "CACHE_FAILURE"

    # Internal errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DoubleWriteCacheError(Exception):
    """Base exception for all double write cache errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for logs and responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(DoubleWriteCacheError):
    """Raised when configuration is invalid or missing."""

    pass


class CacheError(DoubleWriteCacheError):
    """Base exception for cache-related errors."""

    pass


class StoreMismatchError(CacheError):
    """
    Raised at construction when the secondary store is not the same
    implementation type as the primary store.
    """

    def __init__(self, primary: Any, secondary: Any):
        primary_type = type(primary).__qualname__
        secondary_type = type(secondary).__qualname__
        message = f"different cache store instance. {primary_type} != {secondary_type}"
        super().__init__(
            message,
            {"primary_type": primary_type, "secondary_type": secondary_type},
        )


class UnsupportedOperationError(CacheError):
    """Raised when no candidate shape resolves for a required capability."""

    def __init__(self, capability: str, store: Any, details: dict[str, Any] | None = None):
        store_type = type(store).__qualname__
        message = f"Unsupported {capability} on cache store {store_type}"
        error_details = details or {}
        error_details.update({"capability": capability, "store_type": store_type})
        super().__init__(message, error_details)
        self.capability = capability
        self.store_type = store_type


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract the appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        ErrorCode for the exception
    """
    if isinstance(error, StoreMismatchError):
        return ErrorCode.STORE_MISMATCH

    if isinstance(error, UnsupportedOperationError):
        return ErrorCode.UNSUPPORTED_OPERATION

    if isinstance(error, CacheError):
        return ErrorCode.CACHE_FAILURE

    if isinstance(error, ConfigurationError):
        return ErrorCode.INVALID_CONFIGURATION

    return ErrorCode.INTERNAL_ERROR
