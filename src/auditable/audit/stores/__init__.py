"""Audit record stores.

The DynamoDB store is imported lazily by ``auditable.audit.config`` so that
memory and file backends work without AWS credentials configured.
"""

from auditable.audit.stores.base import AuditRecordStore
from auditable.audit.stores.file import FileAuditRecordStore
from auditable.audit.stores.memory import InMemoryAuditRecordStore

__all__ = [
    "AuditRecordStore",
    "FileAuditRecordStore",
    "InMemoryAuditRecordStore",
]
