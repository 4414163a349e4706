"""Custom exceptions for auditable.

Provides a hierarchy of exceptions for different error types.
All auditable exceptions inherit from AuditableException.
"""

from typing import Any, Dict, Optional


class AuditableException(Exception):
    """Base exception for all auditable errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: str = "AUDITABLE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(AuditableException):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class StorageError(AuditableException):
    """Raised when an audit record store fails to read or write.

    Surfaced unchanged to whoever fired the post-event hook. The audited
    entity's own save or delete has already completed at that point.
    """

    def __init__(
        self,
        message: str,
        backend: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["backend"] = backend
        super().__init__(message, code="STORAGE_ERROR", details=details)
