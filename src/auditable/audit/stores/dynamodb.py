"""DynamoDB audit record store."""

import logging
import os
from typing import Any, Dict, Hashable, Iterator, List, Optional, Sequence

import boto3
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

from auditable.audit.schemas import AuditRecord
from auditable.audit.stores.base import AuditRecordStore
from auditable.common.constants import DataConstants, StorageConstants
from auditable.common.exceptions import StorageError
from auditable.core.types import SortOrder

logger = logging.getLogger(__name__)

_RECORD_FIELDS = tuple(AuditRecord.model_fields)


class DynamoDBAuditRecordStore(AuditRecordStore):
    """DynamoDB store with one item per audit record.

    Key layout:
    - pk/sk: ``RECORD#<record_id>`` / ``RECORD`` (direct deletes)
    - gsi1: ``ENTITY#<type>#<id>`` sorted by creation (counts, eviction)
    - gsi2: ``TYPE#<type>`` sorted by update time (class history)
    """

    backend_name = "dynamodb"
    DEFAULT_REGION = "us-east-1"
    ENTITY_INDEX = "gsi1_pk-gsi1_sk-index"
    TYPE_INDEX = "gsi2_pk-gsi2_sk-index"

    def __init__(
        self,
        table_name: Optional[str] = None,
        region: Optional[str] = None,
        aws_profile: Optional[str] = None,
    ):
        self.table_name = table_name or os.environ.get("AUDITABLE_DYNAMODB_TABLE")
        if not self.table_name:
            raise ValueError("AUDITABLE_DYNAMODB_TABLE required")

        self.region = region or os.environ.get("AWS_DEFAULT_REGION", self.DEFAULT_REGION)

        if aws_profile:
            session = boto3.Session(profile_name=aws_profile)
            self.dynamodb = session.resource("dynamodb", region_name=self.region)
        else:
            self.dynamodb = boto3.resource("dynamodb", region_name=self.region)

        self.table = self.dynamodb.Table(self.table_name)
        self._serializer = TypeSerializer()
        logger.info(f"DynamoDB audit store initialized: {self.table_name} ({self.region})")

    # ========== ITEM MAPPING ==========

    @staticmethod
    def _entity_key(entity_type: str, entity_id: Hashable) -> str:
        return f"ENTITY#{entity_type}#{entity_id}"

    def _build_item(self, record: AuditRecord, position: int) -> Dict[str, Any]:
        """Build DynamoDB item; ``position`` keeps batch order on equal timestamps."""
        data = record.to_dict()
        return {
            "pk": f"RECORD#{record.record_id}",
            "sk": "RECORD",
            "gsi1_pk": self._entity_key(record.entity_type, record.entity_id),
            "gsi1_sk": f"{data['created_at']}#{position:04d}#{record.record_id}",
            "gsi2_pk": f"TYPE#{record.entity_type}",
            "gsi2_sk": f"{data['updated_at']}#{position:04d}#{record.record_id}",
            **data,
        }

    @staticmethod
    def _item_to_record(item: Dict[str, Any]) -> AuditRecord:
        return AuditRecord.model_validate({k: item.get(k) for k in _RECORD_FIELDS})

    def _query(
        self, index: str, pk_name: str, pk_value: str,
        forward: bool, limit: Optional[int] = None, **extra: Any
    ) -> Iterator[Dict[str, Any]]:
        """Paginate a GSI query, yielding items until ``limit`` is reached."""
        kwargs: Dict[str, Any] = {
            "IndexName": index,
            "KeyConditionExpression": f"{pk_name} = :pk",
            "ExpressionAttributeValues": {":pk": pk_value},
            "ScanIndexForward": forward,
            **extra,
        }
        seen = 0
        try:
            while True:
                if limit is not None:
                    kwargs["Limit"] = limit - seen
                response = self.table.query(**kwargs)
                for item in response.get("Items", []):
                    yield item
                    seen += 1
                last_key = response.get("LastEvaluatedKey")
                if not last_key or (limit is not None and seen >= limit):
                    return
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error(f"Query failed ({index}): {e}")
            raise StorageError(
                f"DynamoDB query failed on {index}",
                backend=self.backend_name,
            ) from e

    # ========== WRITES ==========

    def insert_records(self, entity_type: str, records: Sequence[AuditRecord]) -> None:
        """Write the batch with transactional puts.

        DynamoDB caps a transaction at 100 items; larger batches are split.
        """
        if not records:
            return

        client = self.dynamodb.meta.client
        chunk_size = StorageConstants.DYNAMODB_TRANSACTION_LIMIT
        items = [self._build_item(record, i) for i, record in enumerate(records)]

        try:
            for start in range(0, len(items), chunk_size):
                client.transact_write_items(
                    TransactItems=[
                        {
                            "Put": {
                                "TableName": self.table_name,
                                "Item": {
                                    k: self._serializer.serialize(v)
                                    for k, v in item.items()
                                },
                            }
                        }
                        for item in items[start:start + chunk_size]
                    ]
                )
        except ClientError as e:
            logger.error(f"insert_records failed for {entity_type}: {e}")
            raise StorageError(
                f"Failed to write audit records for {entity_type}",
                backend=self.backend_name,
                details={"count": len(records)},
            ) from e

    def delete_records(self, record_ids: Sequence[str]) -> None:
        if not record_ids:
            return
        try:
            with self.table.batch_writer() as batch:
                for record_id in record_ids:
                    batch.delete_item(Key={"pk": f"RECORD#{record_id}", "sk": "RECORD"})
        except ClientError as e:
            logger.error(f"delete_records failed: {e}")
            raise StorageError(
                "Failed to delete audit records",
                backend=self.backend_name,
                details={"count": len(record_ids)},
            ) from e

    # ========== READS ==========

    def count_records(self, entity_type: str, entity_id: Hashable) -> int:
        kwargs: Dict[str, Any] = {
            "IndexName": self.ENTITY_INDEX,
            "KeyConditionExpression": "gsi1_pk = :pk",
            "ExpressionAttributeValues": {":pk": self._entity_key(entity_type, entity_id)},
            "Select": "COUNT",
        }
        total = 0
        try:
            while True:
                response = self.table.query(**kwargs)
                total += response.get("Count", 0)
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return total
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error(f"count_records failed: {e}")
            raise StorageError(
                f"Failed to count audit records for {entity_type}",
                backend=self.backend_name,
            ) from e

    def oldest_records(self, entity_type: str, entity_id: Hashable, n: int) -> List[str]:
        if n <= 0:
            return []
        items = self._query(
            self.ENTITY_INDEX, "gsi1_pk", self._entity_key(entity_type, entity_id),
            forward=True, limit=n,
        )
        return [item["record_id"] for item in items]

    def query_history(
        self,
        entity_type: str,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
        order: SortOrder = SortOrder.DESC,
    ) -> List[AuditRecord]:
        items = self._query(
            self.TYPE_INDEX, "gsi2_pk", f"TYPE#{entity_type}",
            forward=SortOrder(order) == SortOrder.ASC, limit=limit,
        )
        return [self._item_to_record(item) for item in items]

    def get_records(
        self,
        entity_type: str,
        entity_id: Hashable,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
        order: SortOrder = SortOrder.ASC,
    ) -> List[AuditRecord]:
        items = self._query(
            self.ENTITY_INDEX, "gsi1_pk", self._entity_key(entity_type, entity_id),
            forward=SortOrder(order) == SortOrder.ASC, limit=limit,
        )
        return [self._item_to_record(item) for item in items]

    def health_check(self) -> bool:
        try:
            self.table.table_status
            return True
        except ClientError as e:
            logger.error(f"Health check failed: {e}")
            return False
