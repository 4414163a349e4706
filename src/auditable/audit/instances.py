"""Per-instance state keyed by object identity.

Entities are often unhashable or define value equality, so they cannot be
dict keys. Entries here are keyed by ``id()`` and dropped as soon as their
instance is garbage collected, so a recycled address never inherits
another object's state.
"""

import weakref
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

V = TypeVar("V")


class InstanceMap(Generic[V]):
    """Mapping from live object instances to values.

    Objects that do not support weak references are held strongly until
    their entry is popped.
    """

    def __init__(self) -> None:
        self._entries: Dict[int, Tuple[Any, V]] = {}

    def _holder(self, obj: Any, key: int) -> Any:
        entries = self._entries

        def _drop(ref: "weakref.ReferenceType[Any]") -> None:
            entry = entries.get(key)
            if entry is not None and entry[0] is ref:
                del entries[key]

        try:
            return weakref.ref(obj, _drop)
        except TypeError:
            return obj

    def _lookup(self, obj: Any) -> Optional[Tuple[Any, V]]:
        entry = self._entries.get(id(obj))
        if entry is None:
            return None
        holder = entry[0]
        held = holder() if isinstance(holder, weakref.ReferenceType) else holder
        return entry if held is obj else None

    def get(self, obj: Any, default: Optional[V] = None) -> Optional[V]:
        entry = self._lookup(obj)
        return default if entry is None else entry[1]

    def set(self, obj: Any, value: V) -> None:
        entry = self._lookup(obj)
        key = id(obj)
        holder = entry[0] if entry is not None else self._holder(obj, key)
        self._entries[key] = (holder, value)

    def pop(self, obj: Any, default: Optional[V] = None) -> Optional[V]:
        entry = self._lookup(obj)
        if entry is None:
            return default
        del self._entries[id(obj)]
        return entry[1]

    def __contains__(self, obj: Any) -> bool:
        return self._lookup(obj) is not None

    def __len__(self) -> int:
        return len(self._entries)
