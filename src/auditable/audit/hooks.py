"""Lifecycle hook wiring.

The host framework owns event dispatch. Anything with a
``register_hook(event_kind, callback)`` method can drive an engine;
HookRegistry is a minimal in-process dispatcher for frameworks without one.
"""

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Protocol

from auditable.audit.instances import InstanceMap
from auditable.core.types import EventKind

if TYPE_CHECKING:
    from auditable.audit.engine import AuditEngine, AuditOutcome, MutationCycle

logger = logging.getLogger(__name__)

HookCallback = Callable[[Any], Any]


class LifecycleDispatcher(Protocol):
    """Host-side event registration."""

    def register_hook(self, event_kind: EventKind, callback: HookCallback) -> None:
        ...


class HookRegistry:
    """Simple synchronous dispatcher: callbacks run in registration order."""

    def __init__(self) -> None:
        self._hooks: Dict[EventKind, List[HookCallback]] = defaultdict(list)

    def register_hook(self, event_kind: EventKind, callback: HookCallback) -> None:
        self._hooks[EventKind(event_kind)].append(callback)

    def fire(self, event_kind: EventKind, entity: Any) -> List[Any]:
        """Run every callback for ``event_kind``; exceptions propagate."""
        return [callback(entity) for callback in self._hooks[EventKind(event_kind)]]

    def hooks_for(self, event_kind: EventKind) -> List[HookCallback]:
        return list(self._hooks[EventKind(event_kind)])


class EngineHooks:
    """Binds an AuditEngine to dispatcher callbacks.

    Dispatcher callbacks only receive the entity, so the cycle opened on
    pre-save is held here per instance until the matching post-save.
    """

    def __init__(self, engine: "AuditEngine"):
        self.engine = engine
        self._open_cycles: InstanceMap["MutationCycle"] = InstanceMap()

    def attach(self, dispatcher: LifecycleDispatcher) -> None:
        dispatcher.register_hook(EventKind.PRE_SAVE, self.pre_save)
        dispatcher.register_hook(EventKind.POST_SAVE, self.post_save)
        dispatcher.register_hook(EventKind.POST_CREATE, self.engine.on_post_create)
        dispatcher.register_hook(EventKind.POST_DELETE, self.engine.on_deleted)
        dispatcher.register_hook(EventKind.VIEWED, self.engine.on_viewed)
        logger.debug(f"Audit hooks registered for {self.engine.entity_type}")

    def pre_save(self, entity: Any) -> None:
        cycle = self.engine.on_pre_save(entity)
        if cycle is None:
            self._open_cycles.pop(entity, None)
        else:
            self._open_cycles.set(entity, cycle)

    def post_save(self, entity: Any) -> "AuditOutcome":
        return self.engine.on_post_save(entity, self._open_cycles.pop(entity, None))

    @property
    def open_cycles(self) -> int:
        return len(self._open_cycles)
