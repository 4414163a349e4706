"""Audit trail facade - one entry point for configuring and querying audits."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from auditable.audit.actor import ActorResolver
from auditable.audit.engine import AuditEngine
from auditable.audit.formatting import RecordFormatter
from auditable.audit.hooks import EngineHooks, LifecycleDispatcher
from auditable.audit.schemas import AuditRecord
from auditable.audit.stores.base import AuditRecordStore
from auditable.common.constants import DataConstants
from auditable.core.base import AuditableEntity
from auditable.core.types import SortOrder
from auditable.policy.engine import PolicyRegistry
from auditable.policy.schemas import AuditPolicy, PolicyFile


logger = logging.getLogger(__name__)


class AuditTrail:
    """Keeps one AuditEngine per entity type over a shared store."""

    def __init__(
        self,
        store: AuditRecordStore,
        actor_resolver: Optional[ActorResolver] = None,
        registry: Optional[PolicyRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
        query_limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
    ):
        self.store = store
        self.actor_resolver = actor_resolver or ActorResolver()
        self.registry = registry or PolicyRegistry()
        self.clock = clock
        self.query_limit = query_limit
        self._engines: Dict[str, AuditEngine] = {}

    def configure(self, entity_type: str, policy: AuditPolicy) -> AuditEngine:
        """Set the audit policy for an entity type."""
        self.registry.configure(entity_type, policy)
        engine = self.engine_for(entity_type)
        engine.policy = policy
        return engine

    def load_policies(self, policy_file: Union[str, Path]) -> PolicyFile:
        """Load per-entity policies from YAML and apply them."""
        parsed = self.registry.load_file(policy_file)
        for entity_type, policy in parsed.entities.items():
            self.engine_for(entity_type).policy = policy
        return parsed

    def engine_for(self, entity_type: str) -> AuditEngine:
        """Get (or lazily create) the engine for an entity type."""
        engine = self._engines.get(entity_type)
        if engine is None:
            engine = AuditEngine(
                entity_type,
                self.store,
                policy=self.registry.get(entity_type),
                actor_resolver=self.actor_resolver,
                clock=self.clock,
            )
            self._engines[entity_type] = engine
        return engine

    def register(self, entity_type: str, dispatcher: LifecycleDispatcher) -> EngineHooks:
        """Attach the engine for ``entity_type`` to a lifecycle dispatcher."""
        return self.engine_for(entity_type).register(dispatcher)

    def disable_field_temporarily(
        self, entity: AuditableEntity, fields: Union[str, Iterable[str]]
    ) -> None:
        """Leave ``fields`` out of the next save audit of this instance."""
        self.engine_for(entity.get_type_name()).disable_field_temporarily(entity, fields)

    def query_history(
        self,
        entity_type: str,
        limit: Optional[int] = None,
        order: Union[str, SortOrder] = DataConstants.DEFAULT_QUERY_ORDER,
    ) -> List[AuditRecord]:
        """Most recent audit records for any entity of a type.

        Args:
            entity_type: Type to query
            limit: Maximum records returned (default from configuration)
            order: "desc" for newest first, "asc" for oldest first

        Returns:
            Records ordered by updated_at
        """
        return self.store.query_history(
            entity_type, limit=limit or self.query_limit, order=SortOrder(order)
        )

    def history_for(
        self,
        entity: AuditableEntity,
        limit: Optional[int] = None,
        order: Union[str, SortOrder] = SortOrder.ASC,
    ) -> List[AuditRecord]:
        """Audit records of a single entity instance."""
        return self.engine_for(entity.get_type_name()).history(
            entity, limit=limit or self.query_limit, order=SortOrder(order)
        )

    def formatter(self, entity_type: str) -> RecordFormatter:
        return RecordFormatter(self.engine_for(entity_type).policy)
