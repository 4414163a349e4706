"""auditable - field-level change auditing for persistent entities."""

__version__ = "0.1.0"

from auditable.audit import (
    AuditEngine,
    AuditRecord,
    AuditTrail,
    HookRegistry,
    InMemoryAuditRecordStore,
    acting_as,
    create_audit_trail,
)
from auditable.core.types import EventKind
from auditable.policy import AuditPolicy, is_auditable

__all__ = [
    "AuditEngine",
    "AuditPolicy",
    "AuditRecord",
    "AuditTrail",
    "EventKind",
    "HookRegistry",
    "InMemoryAuditRecordStore",
    "acting_as",
    "create_audit_trail",
    "is_auditable",
]
