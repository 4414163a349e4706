"""Audit Engine - Wires snapshots, policy, records and retention to lifecycle events.

One engine serves one entity type. It runs synchronously inside the
entity's own save, delete and view calls and does no background work.

A save is handled as a cycle::

    cycle = engine.on_pre_save(entity)      # before the framework writes
    ...                                     # framework saves the entity
    engine.on_post_save(entity, cycle)      # diff, build, retain, persist

The cycle is an immutable value; nothing about it is kept on the engine.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    FrozenSet,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from auditable.audit.actor import ActorResolver
from auditable.audit.builder import RecordBuilder
from auditable.audit.hooks import EngineHooks, LifecycleDispatcher
from auditable.audit.instances import InstanceMap
from auditable.audit.retention import RetentionManager
from auditable.audit.schemas import AuditRecord, RetentionDecision
from auditable.audit.snapshot import Snapshotter
from auditable.audit.stores.base import AuditRecordStore
from auditable.common.constants import AuditConstants, DataConstants
from auditable.core.base import AuditableEntity, is_soft_delete
from auditable.core.types import CycleState, SortOrder
from auditable.policy.engine import is_auditable
from auditable.policy.schemas import AuditPolicy

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MutationCycle:
    """State captured before a save, consumed after it."""
    entity_type: str
    policy: AuditPolicy  # exclusions for this cycle already merged in
    before: Mapping[str, Any]
    after: Mapping[str, Any]
    dirty_keys: Tuple[str, ...]
    updating: bool
    soft_delete: bool
    state: CycleState = CycleState.SNAPSHOTTING

    def advance(self, state: CycleState) -> "MutationCycle":
        return replace(self, state=state)


@dataclass(frozen=True)
class AuditOutcome:
    """What a post-event hook did."""
    state: CycleState
    records: List[AuditRecord] = field(default_factory=list)
    evicted: List[str] = field(default_factory=list)

    @property
    def written(self) -> int:
        return len(self.records)


class AuditEngine:
    """Records field-level history for one entity type.

    Args:
        entity_type: Type name written on every record
        store: Backend the records are persisted to
        policy: Audit policy for the type (defaults to audit everything)
        actor_resolver: Supplies the acting user id
        clock: Returns the timestamp used for new records
    """

    def __init__(
        self,
        entity_type: str,
        store: AuditRecordStore,
        policy: Optional[AuditPolicy] = None,
        actor_resolver: Optional[ActorResolver] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.entity_type = entity_type
        self.store = store
        self.policy = policy or AuditPolicy()
        self.actor_resolver = actor_resolver or ActorResolver()
        self.clock = clock or utc_now

        self.snapshotter = Snapshotter()
        self.builder = RecordBuilder()
        self.retention = RetentionManager()

        # Fields disabled for an instance's next save
        self._disabled: InstanceMap[FrozenSet[str]] = InstanceMap()

    # ========== RUNTIME EXCLUSIONS ==========

    def disable_field_temporarily(
        self, entity: AuditableEntity, fields: Union[str, Iterable[str]]
    ) -> FrozenSet[str]:
        """Stop auditing ``fields`` on this instance's next save.

        Repeated calls accumulate; nothing disabled is re-enabled.

        Returns:
            Every field currently pending for the instance
        """
        if isinstance(fields, str):
            fields = [fields]
        pending = self._disabled.get(entity, frozenset()) | frozenset(fields)
        self._disabled.set(entity, pending)
        return pending

    # ========== SAVE ==========

    def on_pre_save(
        self, entity: AuditableEntity, disabled_fields: Iterable[str] = ()
    ) -> Optional[MutationCycle]:
        """Capture the state needed to audit the upcoming save.

        Args:
            entity: The entity about to be saved
            disabled_fields: Extra fields to leave out of this cycle

        Returns:
            The cycle to hand to on_post_save, or None when auditing is off
        """
        if not self.policy.audit_enabled:
            return None

        before, after = self.snapshotter.capture(entity)
        excluded = self._disabled.pop(entity, frozenset()) | frozenset(disabled_fields)

        cycle = MutationCycle(
            entity_type=self.entity_type,
            policy=self.policy.with_excluded(excluded),
            before=MappingProxyType(before),
            after=MappingProxyType(after),
            dirty_keys=tuple(entity.get_dirty_field_keys() or ()),
            updating=bool(entity.exists()),
            soft_delete=is_soft_delete(entity),
        )
        logger.debug(
            f"Snapshot taken for {self.entity_type} "
            f"({len(cycle.dirty_keys)} dirty, updating={cycle.updating})"
        )
        return cycle

    def on_post_save(
        self, entity: AuditableEntity, cycle: Optional[MutationCycle]
    ) -> AuditOutcome:
        """Diff, filter, retain and persist the changes of an update.

        Inserts are skipped here; on_post_create covers them.

        Raises:
            StorageError: If the store fails; already-built records are dropped
        """
        if cycle is None or not cycle.updating:
            return AuditOutcome(state=CycleState.IDLE)

        entity_id = entity.get_primary_key()
        changes = self.snapshotter.diff(cycle.before, cycle.after, cycle.dirty_keys)
        cycle = cycle.advance(CycleState.DIFFED)

        records = self.builder.build_change_records(
            self.entity_type,
            entity_id,
            changes,
            cycle.policy,
            self.actor_resolver.current_actor(),
            self.clock(),
        )
        if not records:
            return AuditOutcome(state=CycleState.IDLE)

        decision = self._admit(entity_id, len(records), cycle.policy)
        if not decision.allow:
            cycle = cycle.advance(CycleState.REJECTED)
            logger.debug(f"Audit cycle for {self.entity_type}:{entity_id} {cycle.state.value}")
            return AuditOutcome(state=cycle.state)

        self._persist(records)
        if decision.evict:
            self.store.delete_records(decision.evict)

        cycle = cycle.advance(CycleState.PERSISTED)
        logger.debug(
            f"Audit cycle for {self.entity_type}:{entity_id} {cycle.state.value} "
            f"({len(records)} records)"
        )
        return AuditOutcome(state=cycle.state, records=records, evicted=list(decision.evict))

    def _admit(
        self, entity_id: Hashable, incoming: int, policy: AuditPolicy
    ) -> RetentionDecision:
        if policy.history_limit is None:
            return RetentionDecision(allow=True)

        return self.retention.admit(
            entity_id,
            incoming,
            policy,
            self.store.count_records(self.entity_type, entity_id),
            lambda n: self.store.oldest_records(self.entity_type, entity_id, n),
        )

    # ========== SYNTHETIC EVENTS ==========

    def on_post_create(self, entity: AuditableEntity) -> AuditOutcome:
        """Record the creation timestamp when creations are audited."""
        if not (self.policy.audit_enabled and self.policy.audit_creations):
            return AuditOutcome(state=CycleState.IDLE)
        return self._synthetic(
            entity, AuditConstants.CREATED_FIELD, AuditConstants.CREATED_FIELD
        )

    def on_post_delete(
        self, entity: AuditableEntity, cycle: Optional[MutationCycle]
    ) -> AuditOutcome:
        """Record the deletion timestamp of a soft delete.

        Needs the cycle from an on_pre_save call made for the delete.
        """
        if cycle is None or not cycle.soft_delete:
            return AuditOutcome(state=CycleState.IDLE)
        if not is_auditable(AuditConstants.DELETED_FIELD, cycle.policy):
            return AuditOutcome(state=CycleState.IDLE)
        return self._synthetic(
            entity, AuditConstants.DELETED_FIELD, AuditConstants.DELETED_FIELD
        )

    def on_deleted(self, entity: AuditableEntity) -> AuditOutcome:
        """Full delete handling: capture, then record the deletion."""
        return self.on_post_delete(entity, self.on_pre_save(entity))

    def on_viewed(self, entity: AuditableEntity) -> AuditOutcome:
        """Record that the entity was read. Every call writes a new record."""
        if not self.policy.audit_enabled:
            return AuditOutcome(state=CycleState.IDLE)
        return self._synthetic(
            entity, AuditConstants.VIEWED_FIELD, AuditConstants.CREATED_FIELD
        )

    def _synthetic(self, entity: AuditableEntity, key: str, source_field: str) -> AuditOutcome:
        record = self.builder.build_synthetic_record(
            self.entity_type,
            entity.get_primary_key(),
            key,
            (entity.get_field_values() or {}).get(source_field),
            self.actor_resolver.current_actor(),
            self.clock(),
        )
        self._persist([record])
        return AuditOutcome(state=CycleState.PERSISTED, records=[record])

    def _persist(self, records: List[AuditRecord]) -> None:
        try:
            self.store.insert_records(self.entity_type, records)
        except Exception as e:
            logger.error(
                f"Failed to persist {len(records)} audit records for {self.entity_type}: {e}"
            )
            raise

    # ========== READS & WIRING ==========

    def history(
        self,
        entity: AuditableEntity,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
        order: SortOrder = SortOrder.ASC,
    ) -> List[AuditRecord]:
        """Audit records of one entity instance."""
        return self.store.get_records(
            self.entity_type, entity.get_primary_key(), limit=limit, order=order
        )

    def register(self, dispatcher: LifecycleDispatcher) -> EngineHooks:
        """Attach this engine to a lifecycle dispatcher."""
        hooks = EngineHooks(self)
        hooks.attach(dispatcher)
        return hooks
