"""Integration Example: Complete Audit Trail Usage

This example wires an AuditTrail to a toy entity class and walks through
an update, a view, a temporarily disabled field and a soft delete.
"""

from datetime import datetime, timezone

from auditable import AuditPolicy, EventKind, HookRegistry, acting_as
from auditable.audit.config import create_audit_trail


class Document:
    """Minimal entity tracking original and current values."""

    def __init__(self, pk, **fields):
        self.pk = pk
        self.fields = dict(fields)
        self.original = {}
        self.persisted = False
        self.force_deleting = None

    def get_field_values(self):
        return dict(self.fields)

    def get_original_field_values(self):
        return dict(self.original)

    def get_dirty_field_keys(self):
        return [k for k, v in self.fields.items() if self.original.get(k) != v]

    def get_primary_key(self):
        return self.pk

    def get_type_name(self):
        return "documents"

    def exists(self):
        return self.persisted

    def is_soft_deleting(self):
        return self.force_deleting is False


def save(dispatcher, doc):
    dispatcher.fire(EventKind.PRE_SAVE, doc)
    created = not doc.persisted
    doc.persisted = True
    if created:
        dispatcher.fire(EventKind.POST_CREATE, doc)
    dispatcher.fire(EventKind.POST_SAVE, doc)
    doc.original = dict(doc.fields)


def example_complete_flow():
    """Complete example of change logging and retrieval."""
    trail = create_audit_trail(storage_type="memory")
    trail.configure(
        "documents",
        AuditPolicy(
            exclude=frozenset({"checksum"}),
            audit_creations=True,
            history_limit=10,
            cleanup_on_limit=True,
            formatted_field_names={"status": "Status"},
        ),
    )
    dispatcher = HookRegistry()
    trail.register("documents", dispatcher)

    now = datetime.now(timezone.utc)
    doc = Document(1, title="Draft", status="draft", checksum="abc", created_at=now)

    with acting_as("alice"):
        print("\n=== 1. Create ===\n")
        save(dispatcher, doc)

        print("\n=== 2. Update ===\n")
        doc.fields.update(status="published", checksum="def")
        save(dispatcher, doc)

        print("\n=== 3. Temporarily disabled field ===\n")
        trail.disable_field_temporarily(doc, "title")
        doc.fields["title"] = "Final"
        save(dispatcher, doc)

        print("\n=== 4. View ===\n")
        dispatcher.fire(EventKind.VIEWED, doc)

        print("\n=== 5. Soft delete ===\n")
        doc.force_deleting = False
        doc.fields["deleted_at"] = datetime.now(timezone.utc)
        dispatcher.fire(EventKind.POST_DELETE, doc)

    formatter = trail.formatter("documents")
    for record in trail.history_for(doc):
        print(f"  {record.created_at:%H:%M:%S}  {formatter.describe(record)}")


if __name__ == "__main__":
    example_complete_flow()
