"""Audit schemas - type definitions for audit records and retention.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from auditable.common.constants import AuditConstants


def new_record_id() -> str:
    """Generate a unique audit record identifier."""
    return f"{AuditConstants.RECORD_ID_PREFIX}{uuid4().hex[:12]}"


class AuditRecord(BaseModel):
    """A single immutable audit record.

    One record per changed field, or one per synthetic event
    (view, creation, soft deletion).
    """

    model_config = ConfigDict(frozen=True)

    record_id: str = Field(
        default_factory=new_record_id,
        description="Unique record identifier"
    )
    entity_type: str = Field(
        ...,
        description="Type name of the audited entity"
    )
    entity_id: str = Field(
        ...,
        description="Primary key of the audited entity"
    )
    field: str = Field(
        ...,
        description="Changed field, or the sentinel key of a synthetic event"
    )
    old_value: Optional[str] = Field(
        default=None,
        description="String form of the value before the change"
    )
    new_value: Optional[str] = Field(
        default=None,
        description="String form of the value after the change"
    )
    actor_id: Optional[str] = Field(
        default=None,
        description="Who made the change, if known"
    )
    created_at: datetime = Field(
        ...,
        description="When the record was created"
    )
    updated_at: datetime = Field(
        ...,
        description="When the record was last touched (same as created_at)"
    )

    def to_jsonl(self) -> str:
        """Serialize record to JSONL format."""
        return json.dumps(self.model_dump(mode="json"))

    @classmethod
    def from_jsonl(cls, line: str) -> "AuditRecord":
        """Deserialize record from JSONL format."""
        return cls.model_validate(json.loads(line))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class RetentionDecision(BaseModel):
    """Outcome of a retention check for one incoming batch.
    """

    model_config = ConfigDict(frozen=True)

    allow: bool = Field(
        ...,
        description="Whether the incoming batch may be written"
    )
    evict: List[str] = Field(
        default_factory=list,
        description="Record ids to delete before the batch is written"
    )

    @property
    def is_rejected(self) -> bool:
        return not self.allow
