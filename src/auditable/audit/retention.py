"""Retention Manager - Bounded audit history per entity.

Two modes, selected by ``cleanup_on_limit``:

- hard cap: once ``history_limit`` records exist, new batches are rejected
  and history stops growing.
- rolling window: the oldest records are evicted to make room, so history
  slides forward.

The check is read-then-act and is not atomic with the insert.
"""

import logging
from typing import Callable, Hashable, Sequence

from auditable.audit.schemas import RetentionDecision
from auditable.policy.schemas import AuditPolicy

logger = logging.getLogger(__name__)


class RetentionManager:
    """Decides whether an incoming batch may be written."""

    def admit(
        self,
        entity_id: Hashable,
        incoming_count: int,
        policy: AuditPolicy,
        existing_count: int,
        oldest_first: Callable[[int], Sequence[str]],
    ) -> RetentionDecision:
        """Check an incoming batch against the history limit.

        Args:
            entity_id: Entity the batch belongs to
            incoming_count: Number of records about to be written
            policy: Policy carrying history_limit and cleanup_on_limit
            existing_count: Records currently stored for the entity
            oldest_first: Returns up to n existing record ids, oldest first

        Returns:
            RetentionDecision with the records to evict, if any
        """
        limit = policy.history_limit
        if limit is None or existing_count < limit:
            return RetentionDecision(allow=True)

        if not policy.cleanup_on_limit:
            logger.info(
                f"History limit {limit} reached for {entity_id}; "
                f"rejecting {incoming_count} audit records"
            )
            return RetentionDecision(allow=False)

        overflow = existing_count + incoming_count - limit
        to_evict = min(existing_count, max(incoming_count, overflow))
        evict = list(oldest_first(to_evict)) if to_evict > 0 else []

        logger.info(
            f"History limit {limit} reached for {entity_id}; "
            f"evicting {len(evict)} oldest audit records"
        )
        return RetentionDecision(allow=True, evict=evict)
