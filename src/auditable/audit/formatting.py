"""Display helpers for audit records."""

from typing import Optional

from auditable.audit.schemas import AuditRecord
from auditable.policy.schemas import AuditPolicy


class RecordFormatter:
    """Renders records using an entity type's display settings."""

    def __init__(self, policy: AuditPolicy):
        self.policy = policy

    def field_name(self, field: str) -> str:
        """Configured display name of a field, or the field itself."""
        return self.policy.formatted_field_names.get(field, field)

    def value(self, value: Optional[str]) -> str:
        if value is None:
            return self.policy.null_string
        return value

    def actor(self, actor_id: Optional[str]) -> str:
        if actor_id is None:
            return self.policy.unknown_string
        return actor_id

    def describe(self, record: AuditRecord) -> str:
        """One-line summary, e.g. ``alice changed Status from active to inactive``."""
        return (
            f"{self.actor(record.actor_id)} changed {self.field_name(record.field)} "
            f"from {self.value(record.old_value)} to {self.value(record.new_value)}"
        )
