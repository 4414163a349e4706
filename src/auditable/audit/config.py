"""Audit Layer Configuration and Initialization.

Provides factory methods for audit record stores and the audit trail.

Environment variables (see ``auditable.common.config.settings``):
- AUDITABLE_STORAGE_TYPE: "memory" (default), "file", or "dynamodb"
- AUDITABLE_LOG_DIR: Directory for the file store
- AUDITABLE_DYNAMODB_TABLE: DynamoDB table for records
- AUDITABLE_POLICY_FILE: YAML file with per-entity policies
- AWS_DEFAULT_REGION / AWS_PROFILE: AWS settings
"""

import logging
from typing import Optional, Union

from auditable.audit.actor import ActorResolver
from auditable.audit.stores.base import AuditRecordStore
from auditable.audit.stores.file import FileAuditRecordStore
from auditable.audit.stores.memory import InMemoryAuditRecordStore
from auditable.audit.trail import AuditTrail
from auditable.common.config.settings import Config, StorageType, get_config

logger = logging.getLogger(__name__)


def create_record_store(
    storage_type: Optional[Union[str, StorageType]] = None,
    config: Optional[Config] = None,
    **kwargs
) -> AuditRecordStore:
    """Factory method to create an audit record store.

    Args:
        storage_type: "memory", "file" or "dynamodb" (default: from environment)
        config: Configuration to read backend settings from
        **kwargs: Additional arguments for store initialization

    Returns:
        Configured AuditRecordStore instance
    """
    config = config or get_config()
    try:
        storage_type = StorageType(storage_type or config.storage_type)
    except ValueError:
        raise ValueError(f"Unknown storage type: {storage_type}") from None

    if storage_type == StorageType.MEMORY:
        return InMemoryAuditRecordStore()

    if storage_type == StorageType.FILE:
        return FileAuditRecordStore(
            log_dir=kwargs.pop("log_dir", None) or str(config.log_dir),
            **kwargs
        )

    # Import here so memory/file setups never touch boto3
    from auditable.audit.stores.dynamodb import DynamoDBAuditRecordStore

    return DynamoDBAuditRecordStore(
        table_name=kwargs.pop("table_name", None) or config.dynamodb_table,
        region=kwargs.pop("region", None) or config.aws_region,
        aws_profile=kwargs.pop("aws_profile", None) or config.aws_profile,
        **kwargs
    )


def create_audit_trail(
    storage_type: Optional[Union[str, StorageType]] = None,
    actor_resolver: Optional[ActorResolver] = None,
    config: Optional[Config] = None,
    **kwargs
) -> AuditTrail:
    """Factory method to create an audit trail with the configured backend.

    Loads the policy file from configuration when one is set.
    """
    config = config or get_config()
    store = create_record_store(storage_type=storage_type, config=config, **kwargs)
    trail = AuditTrail(
        store=store,
        actor_resolver=actor_resolver,
        query_limit=config.query_limit,
    )

    if config.policy_file:
        trail.load_policies(config.policy_file)

    logger.info(f"Audit trail initialized with {store.backend_name} store")
    return trail


__all__ = [
    "create_record_store",
    "create_audit_trail",
]
