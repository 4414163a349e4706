"""Audit Record Store - Abstraction for audit record persistence.

This module provides an interface for audit storage backends,
decoupling audit logic from specific persistence mechanisms.

Design principles:
- Abstract base class for testability and extensibility
- Support for memory, file, or remote storage backends
- One batch per call, written all-or-nothing
- Failures surface as StorageError
"""

from abc import ABC, abstractmethod
from typing import Hashable, List, Sequence

from auditable.audit.schemas import AuditRecord
from auditable.common.constants import DataConstants
from auditable.core.types import SortOrder


class AuditRecordStore(ABC):
    """Abstract base class for audit record storage backends."""

    backend_name = "abstract"

    @abstractmethod
    def insert_records(self, entity_type: str, records: Sequence[AuditRecord]) -> None:
        """Insert a batch of records for one entity type.

        Args:
            entity_type: Type name the records belong to
            records: The batch to write

        Raises:
            StorageError: If the batch could not be written
        """
        pass

    @abstractmethod
    def count_records(self, entity_type: str, entity_id: Hashable) -> int:
        """Count stored records for one entity."""
        pass

    @abstractmethod
    def oldest_records(self, entity_type: str, entity_id: Hashable, n: int) -> List[str]:
        """Return up to ``n`` record ids for one entity, oldest first."""
        pass

    @abstractmethod
    def delete_records(self, record_ids: Sequence[str]) -> None:
        """Delete records by id.

        Raises:
            StorageError: If the records could not be deleted
        """
        pass

    @abstractmethod
    def query_history(
        self,
        entity_type: str,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
        order: SortOrder = SortOrder.DESC,
    ) -> List[AuditRecord]:
        """Latest records across all entities of a type, by updated_at."""
        pass

    @abstractmethod
    def get_records(
        self,
        entity_type: str,
        entity_id: Hashable,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
        order: SortOrder = SortOrder.ASC,
    ) -> List[AuditRecord]:
        """Records of a single entity, by creation order."""
        pass
