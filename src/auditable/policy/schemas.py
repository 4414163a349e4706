"""Policy schemas - per-entity audit configuration.
"""

from typing import Any, Dict, FrozenSet, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from auditable.common.constants import AuditConstants


class AuditPolicy(BaseModel):
    """Audit configuration supplied by an entity type.

    Immutable. Runtime exclusions produce a new policy via ``with_excluded``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    include_only: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="If non-empty, only these fields are auditable"
    )
    exclude: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Fields never audited unless listed in include_only"
    )
    audit_creations: bool = Field(
        default=False,
        description="Record a synthetic entry when an entity is created"
    )
    audit_enabled: bool = Field(
        default=True,
        description="Master switch for this entity type"
    )
    history_limit: Optional[int] = Field(
        default=None,
        ge=0,
        description="Maximum number of audit records kept per entity"
    )
    cleanup_on_limit: bool = Field(
        default=False,
        description="Evict the oldest records instead of rejecting at the limit"
    )

    # Display settings
    formatted_field_names: Dict[str, str] = Field(
        default_factory=dict,
        description="Human-readable names for fields"
    )
    null_string: str = Field(
        default=AuditConstants.NULL_STRING,
        description="Shown in place of a missing value"
    )
    unknown_string: str = Field(
        default=AuditConstants.UNKNOWN_STRING,
        description="Shown when a value cannot be rendered"
    )

    def with_excluded(self, fields: Union[str, Iterable[str]]) -> "AuditPolicy":
        """Return a copy whose exclude set also covers ``fields``."""
        if isinstance(fields, str):
            fields = [fields]
        extra = frozenset(fields)
        if extra <= self.exclude:
            return self
        return self.model_copy(update={"exclude": self.exclude | extra})

    @classmethod
    def from_model(cls, model: Any) -> "AuditPolicy":
        """Build a policy from audit attributes declared on a model class.

        Recognised attributes: ``keep_audit_of``, ``dont_keep_audit_of``,
        ``audit_enabled``, ``audit_creations_enabled``, ``history_limit``,
        ``audit_cleanup``, ``audit_formatted_field_names``,
        ``audit_null_string`` and ``audit_unknown_string``.
        """
        values: Dict[str, Any] = {
            "include_only": frozenset(getattr(model, "keep_audit_of", None) or ()),
            "exclude": frozenset(getattr(model, "dont_keep_audit_of", None) or ()),
            "audit_enabled": getattr(model, "audit_enabled", True),
            "audit_creations": bool(getattr(model, "audit_creations_enabled", False)),
            "history_limit": getattr(model, "history_limit", None),
            "cleanup_on_limit": bool(getattr(model, "audit_cleanup", False)),
            "formatted_field_names": dict(
                getattr(model, "audit_formatted_field_names", None) or {}
            ),
        }
        null_string = getattr(model, "audit_null_string", None)
        if null_string is not None:
            values["null_string"] = null_string
        unknown_string = getattr(model, "audit_unknown_string", None)
        if unknown_string is not None:
            values["unknown_string"] = unknown_string
        return cls.model_validate(values)


class PolicyFile(BaseModel):
    """Parsed policy file.

    In-memory representation of an audit policy YAML document::

        version: "1.0"
        entities:
          users:
            exclude: [password]
            history_limit: 50
            cleanup_on_limit: true
    """

    version: str = Field(
        default="1.0",
        description="Version of the policy document"
    )
    entities: Dict[str, AuditPolicy] = Field(
        default_factory=dict,
        description="Policy per entity type"
    )
