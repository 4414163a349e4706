"""Actor resolution - who is making the current change.

Providers are probed in priority order; the first one that reports an
authenticated actor wins. Resolution never raises.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Hashable, Iterator, List, Optional, Sequence

logger = logging.getLogger(__name__)

_current_actor: ContextVar[Optional[Hashable]] = ContextVar(
    "auditable_current_actor", default=None
)


class ActorProvider(ABC):
    """A single identity backend."""

    name: str = "provider"

    @abstractmethod
    def current_actor(self) -> Optional[Hashable]:
        """Return the authenticated actor id, or None if nobody is signed in."""
        pass


class StaticActorProvider(ActorProvider):
    """Always reports the same actor (scripts, jobs, tests)."""

    name = "static"

    def __init__(self, actor_id: Optional[Hashable]):
        self.actor_id = actor_id

    def current_actor(self) -> Optional[Hashable]:
        return self.actor_id


class CallableActorProvider(ActorProvider):
    """Adapts an auth facade that exposes a check and a user getter.

    Args:
        check: Returns True when a user is authenticated
        get_actor: Returns the authenticated actor id
        name: Label used in log messages
    """

    def __init__(
        self,
        check: Callable[[], bool],
        get_actor: Callable[[], Any],
        name: str = "callable",
    ):
        self.check = check
        self.get_actor = get_actor
        self.name = name

    def current_actor(self) -> Optional[Hashable]:
        if not self.check():
            return None
        return self.get_actor()


class ContextActorProvider(ActorProvider):
    """Reads the actor bound with :func:`acting_as` in the current context."""

    name = "context"

    def current_actor(self) -> Optional[Hashable]:
        return _current_actor.get()


@contextmanager
def acting_as(actor_id: Optional[Hashable]) -> Iterator[None]:
    """Bind ``actor_id`` as the current actor for the enclosed block."""
    token = _current_actor.set(actor_id)
    try:
        yield
    finally:
        _current_actor.reset(token)


class ActorResolver:
    """Ordered chain of actor providers."""

    def __init__(self, providers: Optional[Sequence[ActorProvider]] = None):
        self.providers: List[ActorProvider] = list(
            providers if providers is not None else [ContextActorProvider()]
        )

    def current_actor(self) -> Optional[str]:
        """Resolve the acting user id.

        A provider that fails is skipped and the next one is tried.

        Returns:
            The first reported actor id as a string, or None
        """
        for provider in self.providers:
            try:
                actor = provider.current_actor()
                if actor is not None:
                    return str(actor)
            except Exception as e:
                logger.warning(f"Actor provider '{provider.name}' failed: {e}")
        return None
