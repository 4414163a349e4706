"""Configuration management - Centralized configuration for auditable.

Provides environment-aware configuration with sensible defaults.
All configuration is loaded from environment variables with fallbacks.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from auditable.common.constants import DataConstants
from auditable.common.exceptions import ConfigurationError


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageType(str, Enum):
    """Audit record store backends."""
    MEMORY = "memory"
    FILE = "file"
    DYNAMODB = "dynamodb"


@dataclass
class Config:
    """Central configuration object for auditable.

    All settings can be overridden via environment variables prefixed with AUDITABLE_.

    Example:
        AUDITABLE_ENVIRONMENT=production
        AUDITABLE_STORAGE_TYPE=dynamodb
        AUDITABLE_DYNAMODB_TABLE=audit-records
    """

    # Core settings
    environment: Environment = field(
        default_factory=lambda: Environment(
            os.getenv("AUDITABLE_ENVIRONMENT", "development")
        )
    )
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("AUDITABLE_LOG_LEVEL", "INFO"))
    )

    # Storage settings
    storage_type: StorageType = field(
        default_factory=lambda: StorageType(
            os.getenv("AUDITABLE_STORAGE_TYPE", "memory")
        )
    )
    log_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("AUDITABLE_LOG_DIR", "./logs/audit")
        )
    )
    dynamodb_table: Optional[str] = field(
        default_factory=lambda: os.getenv("AUDITABLE_DYNAMODB_TABLE")
    )
    aws_region: str = field(
        default_factory=lambda: os.getenv("AWS_DEFAULT_REGION", "us-east-1")
    )
    aws_profile: Optional[str] = field(
        default_factory=lambda: os.getenv("AWS_PROFILE")
    )

    # Policy settings
    policy_file: Optional[Path] = field(
        default_factory=lambda: (
            Path(os.environ["AUDITABLE_POLICY_FILE"])
            if os.getenv("AUDITABLE_POLICY_FILE")
            else None
        )
    )
    query_limit: int = field(
        default_factory=lambda: int(
            os.getenv("AUDITABLE_QUERY_LIMIT", str(DataConstants.DEFAULT_QUERY_LIMIT))
        )
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.storage_type == StorageType.DYNAMODB and not self.dynamodb_table:
            raise ConfigurationError(
                "AUDITABLE_DYNAMODB_TABLE must be set when using DynamoDB storage",
                details={"storage_type": self.storage_type.value},
            )

        if self.query_limit <= 0:
            raise ConfigurationError(
                "AUDITABLE_QUERY_LIMIT must be positive",
                details={"query_limit": self.query_limit},
            )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT


# Singleton instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config: The global configuration singleton.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
