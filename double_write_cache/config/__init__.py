"""
Double Write Cache — Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import configure_logging, get_config, load_config, reload_config
from .schemas import (
    CacheBackend,
    CacheConfig,
    DoubleWriteConfig,
    Environment,
    LogLevel,
    MirrorPolicy,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    "configure_logging",
    # Main config
    "DoubleWriteConfig",
    # Enums
    "Environment",
    "CacheBackend",
    "MirrorPolicy",
    "LogLevel",
    # Config sections
    "CacheConfig",
]
