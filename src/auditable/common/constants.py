"""Centralized constants for auditable."""


# ===== AUDIT RECORDS =====
class AuditConstants:
    # Sentinel keys used by synthetic records
    VIEWED_FIELD = "showed_at"
    CREATED_FIELD = "created_at"
    DELETED_FIELD = "deleted_at"

    RECORD_ID_PREFIX = "aud_"

    # Display fallbacks
    NULL_STRING = "nothing"
    UNKNOWN_STRING = "unknown"


# ===== DATA & QUERY LIMITS =====
class DataConstants:
    DEFAULT_QUERY_LIMIT = 100
    DEFAULT_QUERY_ORDER = "desc"


# ===== STORAGE =====
class StorageConstants:
    FILE_PATTERN = "audit_{entity_type}.jsonl"
    DYNAMODB_TRANSACTION_LIMIT = 100
