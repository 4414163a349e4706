"""Configuration module - environment-driven settings."""

from auditable.common.config.settings import (
    Config,
    Environment,
    LogLevel,
    StorageType,
    get_config,
    reset_config,
)

__all__ = [
    "Config",
    "Environment",
    "LogLevel",
    "StorageType",
    "get_config",
    "reset_config",
]
