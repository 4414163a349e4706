#!/usr/bin/env python3
"""Main entry point for auditable."""

from auditable.audit.config import create_audit_trail
from auditable.common.config import get_config
from auditable.common.logging import get_logger

logger = get_logger(__name__)


def main():
    """Main entry point."""
    config = get_config()
    trail = create_audit_trail(config=config)
    logger.info(f"auditable initialized in {config.environment.value} mode")
    logger.info(f"Record store: {trail.store.backend_name}")
    if trail.registry.version:
        logger.info(
            f"Policies v{trail.registry.version} for: {', '.join(trail.registry.entity_types)}"
        )


if __name__ == "__main__":
    main()
