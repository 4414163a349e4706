"""Snapshotter - Before/after capture and structural diff of entity fields.

Only values that can be compared safely survive capture. Opaque objects
are dropped from both snapshots; collections are captured but never
diffed.
"""

from typing import Any, Dict, Iterable, Mapping, Tuple

from auditable.core.base import AuditableEntity
from auditable.core.types import ValueKind, classify_value

FieldSnapshot = Dict[str, Any]
FieldDiff = Dict[str, Tuple[Any, Any]]


class Snapshotter:
    """Captures field snapshots around a save and diffs them."""

    @staticmethod
    def _comparable(values: Mapping[str, Any]) -> FieldSnapshot:
        return {
            key: value
            for key, value in values.items()
            if classify_value(value) != ValueKind.OPAQUE
        }

    def capture_before(self, entity: AuditableEntity) -> FieldSnapshot:
        """Snapshot of the entity's last persisted values."""
        return self._comparable(entity.get_original_field_values() or {})

    def capture_after(self, entity: AuditableEntity) -> FieldSnapshot:
        """Snapshot of the entity's current in-memory values."""
        return self._comparable(entity.get_field_values() or {})

    def capture(self, entity: AuditableEntity) -> Tuple[FieldSnapshot, FieldSnapshot]:
        """Capture both snapshots, dropping opaque fields from both sides."""
        original = entity.get_original_field_values() or {}
        current = entity.get_field_values() or {}

        opaque = {
            key
            for values in (original, current)
            for key, value in values.items()
            if classify_value(value) == ValueKind.OPAQUE
        }

        before = {k: v for k, v in original.items() if k not in opaque}
        after = {k: v for k, v in current.items() if k not in opaque}
        return before, after

    def diff(
        self,
        before: FieldSnapshot,
        after: FieldSnapshot,
        changed_keys: Iterable[str],
    ) -> FieldDiff:
        """Compute (old, new) pairs for the dirty fields that really changed.

        Args:
            before: Snapshot taken from the persisted values
            after: Snapshot taken from the in-memory values
            changed_keys: Fields the framework reports as dirty

        Returns:
            Mapping of field name to (old value, new value), in dirty-set order
        """
        changes: FieldDiff = {}
        for key in changed_keys:
            if key in changes or key not in after:
                continue

            new = after[key]
            if classify_value(new) == ValueKind.COLLECTION:
                continue

            if key not in before:
                changes[key] = (None, new)
            elif before[key] != new:
                changes[key] = (before[key], new)

        return changes
