"""Audit module - Field-level change history for persistent entities.

Components:
- Snapshotter: Before/after capture and diff of entity fields
- ActorResolver: Ordered identity providers, never raises
- RecordBuilder: Diffs and lifecycle events to AuditRecords
- RetentionManager: Hard cap or rolling window per entity
- AuditEngine: Per-entity-type orchestration of the above
- AuditTrail: Facade over engines, policies and the record store
- AuditRecordStore: Abstract base class for storage backends
"""

from auditable.audit.actor import (
    ActorProvider,
    ActorResolver,
    CallableActorProvider,
    ContextActorProvider,
    StaticActorProvider,
    acting_as,
)
from auditable.audit.builder import RecordBuilder
from auditable.audit.config import create_audit_trail, create_record_store
from auditable.audit.engine import AuditEngine, AuditOutcome, MutationCycle
from auditable.audit.formatting import RecordFormatter
from auditable.audit.hooks import EngineHooks, HookRegistry, LifecycleDispatcher
from auditable.audit.retention import RetentionManager
from auditable.audit.schemas import AuditRecord, RetentionDecision
from auditable.audit.snapshot import Snapshotter
from auditable.audit.stores import (
    AuditRecordStore,
    FileAuditRecordStore,
    InMemoryAuditRecordStore,
)
from auditable.audit.trail import AuditTrail

__all__ = [
    "ActorProvider",
    "ActorResolver",
    "CallableActorProvider",
    "ContextActorProvider",
    "StaticActorProvider",
    "acting_as",
    "RecordBuilder",
    "create_audit_trail",
    "create_record_store",
    "AuditEngine",
    "AuditOutcome",
    "MutationCycle",
    "RecordFormatter",
    "EngineHooks",
    "HookRegistry",
    "LifecycleDispatcher",
    "RetentionManager",
    "AuditRecord",
    "RetentionDecision",
    "Snapshotter",
    "AuditRecordStore",
    "FileAuditRecordStore",
    "InMemoryAuditRecordStore",
    "AuditTrail",
]
