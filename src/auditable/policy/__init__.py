"""Policy - which fields of which entities are audited."""

from auditable.policy.engine import PolicyRegistry, is_auditable
from auditable.policy.schemas import AuditPolicy, PolicyFile

__all__ = [
    "AuditPolicy",
    "PolicyFile",
    "PolicyRegistry",
    "is_auditable",
]
