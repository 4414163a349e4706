"""Core types and base contracts."""

from auditable.core.types import (
    CycleState,
    EventKind,
    SortOrder,
    ValueKind,
    classify_value,
    to_audit_string,
)
from auditable.core.base import AuditableEntity, is_soft_delete

__all__ = [
    "CycleState",
    "EventKind",
    "SortOrder",
    "ValueKind",
    "classify_value",
    "to_audit_string",
    "AuditableEntity",
    "is_soft_delete",
]
