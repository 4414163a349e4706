"""Common utilities - logging, config, exceptions."""

from auditable.common.logging.logger import get_logger
from auditable.common.config import Config, get_config, reset_config
from auditable.common.exceptions import (
    AuditableException,
    ConfigurationError,
    StorageError,
)

__all__ = [
    # Logging
    "get_logger",
    # Config
    "Config",
    "get_config",
    "reset_config",
    # Exceptions
    "AuditableException",
    "ConfigurationError",
    "StorageError",
]
