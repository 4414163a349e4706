"""Record Builder - Turns diffs and lifecycle events into audit records."""

from datetime import datetime
from typing import Any, Hashable, List, Mapping, Optional, Tuple

from auditable.audit.schemas import AuditRecord
from auditable.core.types import to_audit_string
from auditable.policy.engine import is_auditable
from auditable.policy.schemas import AuditPolicy


class RecordBuilder:
    """Creates immutable AuditRecord values."""

    def build_change_records(
        self,
        entity_type: str,
        entity_id: Hashable,
        diff: Mapping[str, Tuple[Any, Any]],
        policy: AuditPolicy,
        actor: Optional[str],
        now: datetime,
    ) -> List[AuditRecord]:
        """Build one record per auditable field in ``diff``.

        Args:
            entity_type: Type name of the entity
            entity_id: Primary key of the entity
            diff: Field name to (old, new) pairs, in the order to record them
            policy: Policy deciding which fields are kept
            actor: Acting user id, if any
            now: Timestamp for created_at and updated_at

        Returns:
            Records in diff order
        """
        records = []
        for field, (old, new) in diff.items():
            if not is_auditable(field, policy):
                continue

            old_value = to_audit_string(old)
            new_value = to_audit_string(new)
            if old_value == new_value:
                continue

            records.append(
                AuditRecord(
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    field=field,
                    old_value=old_value,
                    new_value=new_value,
                    actor_id=actor,
                    created_at=now,
                    updated_at=now,
                )
            )
        return records

    def build_synthetic_record(
        self,
        entity_type: str,
        entity_id: Hashable,
        key: str,
        new_value: Any,
        actor: Optional[str],
        now: datetime,
    ) -> AuditRecord:
        """Build a record for an event that is not a field diff."""
        return AuditRecord(
            entity_type=entity_type,
            entity_id=str(entity_id),
            field=key,
            old_value=None,
            new_value=to_audit_string(new_value),
            actor_id=actor,
            created_at=now,
            updated_at=now,
        )
