"""
Double Write Cache — Configuration Loader

Loads and validates configuration from environment variables and .env files.
Provides a singleton configuration instance for the runtime.
"""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import DoubleWriteConfig

logger = logging.getLogger(__name__)

_config_instance: DoubleWriteConfig | None = None


def _store_config_from_env(prefix: str) -> dict[str, Any]:
    """Build a CacheConfig dict from ``<prefix>_CACHE_*`` / ``<prefix>_REDIS_*`` variables."""
    redis_url = os.getenv(f"{prefix}_REDIS_URL")
    # Auto-detect backend: Redis if a URL is set, else memory
    cache_backend = "redis" if redis_url else "memory"

    return {
        "backend": os.getenv(f"{prefix}_CACHE_BACKEND", cache_backend),
        "ttl_seconds": int(os.getenv(f"{prefix}_CACHE_TTL_SECONDS", "3600")),
        "max_size": int(os.getenv(f"{prefix}_CACHE_MAX_SIZE", "1000")),
        "namespace": os.getenv(f"{prefix}_CACHE_NAMESPACE", "dwc"),
        "redis_url": redis_url,
        "redis_max_connections": int(os.getenv(f"{prefix}_REDIS_MAX_CONNECTIONS", "10")),
        "redis_socket_timeout": int(os.getenv(f"{prefix}_REDIS_SOCKET_TIMEOUT", "5")),
    }


def _secondary_configured() -> bool:
    return any(
        os.getenv(name)
        for name in ("SECONDARY_CACHE_BACKEND", "SECONDARY_REDIS_URL", "SECONDARY_CACHE_NAMESPACE")
    )


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> DoubleWriteConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in the working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated DoubleWriteConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    if env_file:
        env_path = Path(env_file)
    else:
        env_path = Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    try:
        config_dict: dict[str, Any] = {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "primary": _store_config_from_env("PRIMARY"),
            "secondary": _store_config_from_env("SECONDARY") if _secondary_configured() else None,
            "mirror_policy": os.getenv("MIRROR_POLICY", "raise").lower(),
        }
        _config_instance = DoubleWriteConfig(**config_dict)
        logger.info(
            f"Configuration loaded successfully (environment: {_config_instance.environment})",
            extra={
                "environment": _config_instance.environment,
                "primary_backend": _config_instance.primary.backend,
                "mirrored": _config_instance.secondary is not None,
            },
        )
        return _config_instance
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors()},
            exc_info=True,
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables.",
            details={"validation_errors": e.errors()},
        ) from e
    except ValueError as e:
        # int() conversion of a malformed numeric variable
        logger.error(f"Invalid numeric configuration value: {e}", extra={"error": str(e)})
        raise ConfigurationError(
            f"Failed to load configuration: {e}",
            details={"error": str(e)},
        ) from e


def get_config() -> DoubleWriteConfig:
    """
    Get the current configuration instance, loading it on first use.

    Returns:
        Current DoubleWriteConfig instance
    """
    if _config_instance is None:
        return load_config()
    return _config_instance


def reload_config(env_file: str | None = None) -> DoubleWriteConfig:
    """Force a reload of the configuration from the environment."""
    return load_config(env_file=env_file, reload=True)


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging for applications embedding the client.

    Args:
        level: Log level name (default: the configured ``log_level``)
    """
    if level is None:
        level = str(get_config().log_level)
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
