"""
Double Write Cache — Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration is validated when loaded.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class CacheBackend(str, Enum):
    """Supported cache backends."""

    MEMORY = "memory"
    REDIS = "redis"


class MirrorPolicy(str, Enum):
    """What to do when the secondary store raises while mirroring a write."""

    IGNORE = "ignore"
    LOG = "log"
    RAISE = "raise"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CacheConfig(BaseModel):
    """Configuration of a single backing store."""

    backend: CacheBackend = Field(default=CacheBackend.MEMORY, description="Cache backend to use")
    ttl_seconds: int = Field(default=3600, ge=0, description="Default TTL in seconds (0 = no expiry)")
    max_size: int = Field(default=1000, ge=1, description="Max cache entries (memory backend)")
    namespace: str = Field(default="dwc", description="Cache key namespace/prefix")

    # Redis-specific settings (only used when backend=redis)
    redis_url: str | None = Field(default=None, validate_default=True, description="Redis connection URL")
    redis_max_connections: int = Field(default=10, ge=1, description="Redis connection pool size")
    redis_socket_timeout: int = Field(default=5, ge=1, description="Redis socket timeout in seconds")

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str | None, info: Any) -> str | None:
        """Ensure redis_url is provided when backend is redis."""
        backend = info.data.get("backend")
        if backend == CacheBackend.REDIS and not v:
            raise ValueError("redis_url is required when cache backend is 'redis'")
        return v


class DoubleWriteConfig(BaseModel):
    """Root configuration: one primary store, an optional write-only secondary."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    primary: CacheConfig = Field(default_factory=CacheConfig)
    secondary: CacheConfig | None = Field(default=None, description="Write-only mirror store")
    mirror_policy: MirrorPolicy = Field(
        default=MirrorPolicy.RAISE,
        description="Handling of secondary store failures while mirroring",
    )

    @field_validator("secondary")
    @classmethod
    def validate_secondary(cls, v: CacheConfig | None, info: Any) -> CacheConfig | None:
        """Mirrored writes are not translated, so both stores must use the same backend."""
        primary = info.data.get("primary")
        if v is not None and primary is not None and v.backend != primary.backend:
            raise ValueError(
                f"secondary backend '{v.backend}' must match primary backend '{primary.backend}'"
            )
        return v

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
