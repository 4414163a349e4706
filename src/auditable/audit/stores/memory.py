"""In-memory implementation of AuditRecordStore."""

import threading
from typing import Hashable, List, Sequence

from auditable.audit.schemas import AuditRecord
from auditable.audit.stores.base import AuditRecordStore
from auditable.common.constants import DataConstants
from auditable.core.types import SortOrder


class InMemoryAuditRecordStore(AuditRecordStore):
    """In-memory store for testing and development.

    Records are kept in insertion order, which doubles as creation order.
    Not suitable for production use.
    """

    backend_name = "memory"

    def __init__(self) -> None:
        self._records: List[AuditRecord] = []
        self._lock = threading.Lock()

    def insert_records(self, entity_type: str, records: Sequence[AuditRecord]) -> None:
        with self._lock:
            self._records.extend(records)

    def count_records(self, entity_type: str, entity_id: Hashable) -> int:
        return len(self._for_entity(entity_type, entity_id))

    def oldest_records(self, entity_type: str, entity_id: Hashable, n: int) -> List[str]:
        if n <= 0:
            return []
        return [r.record_id for r in self._for_entity(entity_type, entity_id)[:n]]

    def delete_records(self, record_ids: Sequence[str]) -> None:
        doomed = set(record_ids)
        with self._lock:
            self._records = [r for r in self._records if r.record_id not in doomed]

    def query_history(
        self,
        entity_type: str,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
        order: SortOrder = SortOrder.DESC,
    ) -> List[AuditRecord]:
        results = [r for r in self._snapshot() if r.entity_type == entity_type]
        results.sort(
            key=lambda r: r.updated_at, reverse=SortOrder(order) == SortOrder.DESC
        )
        return results[:limit]

    def get_records(
        self,
        entity_type: str,
        entity_id: Hashable,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
        order: SortOrder = SortOrder.ASC,
    ) -> List[AuditRecord]:
        results = self._for_entity(entity_type, entity_id)
        if SortOrder(order) == SortOrder.DESC:
            results.reverse()
        return results[:limit]

    def all_records(self) -> List[AuditRecord]:
        return self._snapshot()

    def _snapshot(self) -> List[AuditRecord]:
        with self._lock:
            return list(self._records)

    def _for_entity(self, entity_type: str, entity_id: Hashable) -> List[AuditRecord]:
        entity_id = str(entity_id)
        return [
            r for r in self._snapshot()
            if r.entity_type == entity_type and r.entity_id == entity_id
        ]
