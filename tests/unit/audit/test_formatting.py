"""Unit tests for record display helpers."""

from datetime import datetime, timezone

from auditable.audit.formatting import RecordFormatter
from auditable.audit.schemas import AuditRecord
from auditable.policy.schemas import AuditPolicy

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def make_record(**overrides):
    fields = dict(
        entity_type="users",
        entity_id="7",
        field="status",
        old_value="active",
        new_value="inactive",
        actor_id="alice",
        created_at=NOW,
        updated_at=NOW,
    )
    fields.update(overrides)
    return AuditRecord(**fields)


class TestRecordFormatter:
    """Test display names and fallbacks."""

    def test_defaults(self):
        formatter = RecordFormatter(AuditPolicy())

        assert formatter.field_name("status") == "status"
        assert formatter.value(None) == "nothing"
        assert formatter.actor(None) == "unknown"

    def test_describe_uses_policy_settings(self):
        formatter = RecordFormatter(
            AuditPolicy(
                formatted_field_names={"status": "Status"},
                null_string="(empty)",
                unknown_string="system",
            )
        )
        record = make_record(old_value=None, actor_id=None)

        assert formatter.describe(record) == "system changed Status from (empty) to inactive"

    def test_describe_plain(self):
        formatter = RecordFormatter(AuditPolicy())
        assert formatter.describe(make_record()) == "alice changed status from active to inactive"
