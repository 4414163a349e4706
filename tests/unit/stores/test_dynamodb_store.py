"""Unit tests for the DynamoDB audit record store."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from auditable.audit.schemas import AuditRecord
from auditable.audit.stores.dynamodb import DynamoDBAuditRecordStore
from auditable.common.exceptions import StorageError
from auditable.core.types import SortOrder

NOW = datetime(2026, 1, 29, 10, 0, tzinfo=timezone.utc)


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


def client_error(operation="Query"):
    return ClientError(
        {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
        operation,
    )


class TestDynamoDBAuditRecordStore:
    """Test DynamoDB store with a mocked resource."""

    @pytest.fixture
    def mock_resource(self):
        """Create mock DynamoDB resource."""
        return MagicMock()

    @pytest.fixture
    def mock_table(self, mock_resource):
        return mock_resource.Table.return_value

    @pytest.fixture
    def dynamo_store(self, mock_resource):
        """Create store with mocked boto3 resource."""
        with patch("boto3.resource", return_value=mock_resource):
            return DynamoDBAuditRecordStore(table_name="test-audit", region="eu-west-1")

    def test_requires_table_name(self, monkeypatch):
        monkeypatch.delenv("AUDITABLE_DYNAMODB_TABLE", raising=False)
        with pytest.raises(ValueError, match="AUDITABLE_DYNAMODB_TABLE"):
            DynamoDBAuditRecordStore()

    def test_insert_uses_transaction(self, dynamo_store, mock_resource):
        record = make_record()
        dynamo_store.insert_records("users", [record])

        client = mock_resource.meta.client
        assert client.transact_write_items.call_count == 1
        [put] = client.transact_write_items.call_args[1]["TransactItems"]
        item = put["Put"]["Item"]

        assert put["Put"]["TableName"] == "test-audit"
        assert item["pk"] == {"S": f"RECORD#{record.record_id}"}
        assert item["gsi1_pk"] == {"S": "ENTITY#users#7"}
        assert item["gsi2_pk"] == {"S": "TYPE#users"}
        assert item["field"] == {"S": "status"}

    def test_null_values_serialized(self, dynamo_store, mock_resource):
        dynamo_store.insert_records("users", [make_record(old_value=None)])

        [put] = mock_resource.meta.client.transact_write_items.call_args[1]["TransactItems"]
        assert put["Put"]["Item"]["old_value"] == {"NULL": True}

    def test_large_batches_split(self, dynamo_store, mock_resource):
        dynamo_store.insert_records("users", [make_record() for _ in range(150)])

        calls = mock_resource.meta.client.transact_write_items.call_args_list
        assert [len(c[1]["TransactItems"]) for c in calls] == [100, 50]

    def test_empty_batch_is_noop(self, dynamo_store, mock_resource):
        dynamo_store.insert_records("users", [])
        assert not mock_resource.meta.client.transact_write_items.called

    def test_insert_failure_raises_storage_error(self, dynamo_store, mock_resource):
        mock_resource.meta.client.transact_write_items.side_effect = client_error(
            "TransactWriteItems"
        )

        with pytest.raises(StorageError) as exc_info:
            dynamo_store.insert_records("users", [make_record()])

        assert exc_info.value.details == {"count": 1, "backend": "dynamodb"}

    def test_count_records_paginates(self, dynamo_store, mock_table):
        mock_table.query.side_effect = [
            {"Count": 3, "LastEvaluatedKey": {"pk": "x"}},
            {"Count": 2},
        ]

        assert dynamo_store.count_records("users", 7) == 5
        first_call = mock_table.query.call_args_list[0][1]
        assert first_call["Select"] == "COUNT"
        assert first_call["ExpressionAttributeValues"] == {":pk": "ENTITY#users#7"}

    def test_oldest_records_query_forward(self, dynamo_store, mock_table):
        mock_table.query.return_value = {
            "Items": [{"record_id": "aud_1"}, {"record_id": "aud_2"}],
        }

        assert dynamo_store.oldest_records("users", 7, 2) == ["aud_1", "aud_2"]
        kwargs = mock_table.query.call_args[1]
        assert kwargs["IndexName"] == DynamoDBAuditRecordStore.ENTITY_INDEX
        assert kwargs["ScanIndexForward"] is True
        assert kwargs["Limit"] == 2

    def test_delete_records_batch(self, dynamo_store, mock_table):
        batch = mock_table.batch_writer.return_value.__enter__.return_value

        dynamo_store.delete_records(["aud_1", "aud_2"])

        keys = [c[1]["Key"] for c in batch.delete_item.call_args_list]
        assert keys == [
            {"pk": "RECORD#aud_1", "sk": "RECORD"},
            {"pk": "RECORD#aud_2", "sk": "RECORD"},
        ]

    def test_query_history_newest_first(self, dynamo_store, mock_table):
        record = make_record()
        mock_table.query.return_value = {"Items": [{"pk": "ignored", **record.to_dict()}]}

        results = dynamo_store.query_history("users", limit=10, order=SortOrder.DESC)

        assert results == [record]
        kwargs = mock_table.query.call_args[1]
        assert kwargs["IndexName"] == DynamoDBAuditRecordStore.TYPE_INDEX
        assert kwargs["ScanIndexForward"] is False

    def test_query_failure_raises_storage_error(self, dynamo_store, mock_table):
        mock_table.query.side_effect = client_error()

        with pytest.raises(StorageError):
            dynamo_store.get_records("users", 7)

    def test_health_check(self, dynamo_store, mock_table):
        assert dynamo_store.health_check() is True
