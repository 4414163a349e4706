"""Core types and enums."""

from collections.abc import Mapping, Sequence, Set
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID


class EventKind(str, Enum):
    """Lifecycle events the audit engine listens to."""
    PRE_SAVE = "preSave"
    POST_SAVE = "postSave"
    POST_CREATE = "postCreate"
    POST_DELETE = "postDelete"
    VIEWED = "viewed"


class ValueKind(str, Enum):
    """How a captured field value takes part in auditing."""
    SCALAR = "scalar"          # compared and recorded
    COLLECTION = "collection"  # captured, never diffed
    OPAQUE = "opaque"          # dropped at capture


class SortOrder(str, Enum):
    """Ordering for history queries."""
    ASC = "asc"
    DESC = "desc"


class CycleState(str, Enum):
    """Where a mutation cycle currently is."""
    IDLE = "idle"
    SNAPSHOTTING = "snapshotting"
    DIFFED = "diffed"
    PERSISTED = "persisted"
    REJECTED = "rejected"


_SCALAR_TYPES = (
    bool, int, float, Decimal, str, bytes,
    datetime, date, time, UUID, Enum,
)


def classify_value(value: Any) -> ValueKind:
    """Classify a field value for snapshotting.

    Objects outside the known scalar types count as value types only when
    their class defines both its own equality and its own string form, and
    that equality yields a plain truth value (array-likes do not).
    """
    if value is None or isinstance(value, _SCALAR_TYPES):
        return ValueKind.SCALAR
    if isinstance(value, (Mapping, Set)):
        return ValueKind.COLLECTION
    if isinstance(value, Sequence):
        return ValueKind.COLLECTION

    cls = type(value)
    if cls.__eq__ is object.__eq__ or cls.__str__ is object.__str__:
        return ValueKind.OPAQUE
    try:
        bool(value == value)
    except Exception:
        return ValueKind.OPAQUE
    return ValueKind.SCALAR


def to_audit_string(value: Any) -> Optional[str]:
    """Convert a captured value to the string stored on an audit record."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Enum):
        return to_audit_string(value.value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
