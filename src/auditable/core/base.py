"""Entity contract consumed by the audit engine."""

from typing import Any, Dict, Hashable, Iterable, Protocol, runtime_checkable


@runtime_checkable
class AuditableEntity(Protocol):
    """Accessors the host persistence framework must expose.

    Field storage, identity and save/delete execution belong to the
    framework; the engine only reads through this surface.
    """

    def get_field_values(self) -> Dict[str, Any]:
        """Current in-memory field values."""
        ...

    def get_original_field_values(self) -> Dict[str, Any]:
        """Field values as last persisted (loaded) by the framework."""
        ...

    def get_dirty_field_keys(self) -> Iterable[str]:
        """Fields reported as modified since load."""
        ...

    def get_primary_key(self) -> Hashable:
        ...

    def get_type_name(self) -> str:
        ...

    def exists(self) -> bool:
        """Whether the entity was already persisted before this save."""
        ...

    def is_soft_deleting(self) -> bool:
        ...


def is_soft_delete(entity: Any) -> bool:
    """Decide whether a delete on ``entity`` is a soft delete.

    A ``force_deleting`` flag wins when set (soft when it is false), then a
    legacy ``soft_delete`` flag, then the entity's own ``is_soft_deleting()``.
    Anything else is a hard delete.
    """
    force_deleting = getattr(entity, "force_deleting", None)
    if force_deleting is not None:
        return not force_deleting

    soft_delete = getattr(entity, "soft_delete", None)
    if soft_delete is not None:
        return bool(soft_delete)

    checker = getattr(entity, "is_soft_deleting", None)
    if callable(checker):
        return bool(checker())

    return False
