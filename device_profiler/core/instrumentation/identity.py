"""
Identity Registry - stable integer ids for instrumented objects.

An id is handed out the first time an object is seen and is stored on the
object itself, so a later wrap of the same instance is detected and skipped.
Ids start at 1, only ever increase, and are never reused.
"""

from __future__ import annotations

import itertools
from typing import Any, Dict, Optional, Tuple

IDENTITY_ATTRIBUTE = "_profiler_id"


class IdentityRegistry:
    """Assigns and remembers object identities.

    The id lives in the instance ``__dict__`` (written directly, bypassing any
    custom ``__setattr__``). Instances without a ``__dict__`` are tracked in a
    side table that holds a strong reference, so CPython never recycles the
    ``id()`` key while the entry exists.
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._issued = 0
        self._side_table: Dict[int, Tuple[Any, int]] = {}

    @property
    def count(self) -> int:
        """Number of identities handed out so far."""
        return self._issued

    def get_identity(self, obj: Any) -> Optional[int]:
        attributes = instance_dict(obj)
        if attributes is not None:
            value = attributes.get(IDENTITY_ATTRIBUTE)
            return value if isinstance(value, int) else None
        entry = self._side_table.get(id(obj))
        if entry is not None and entry[0] is obj:
            return entry[1]
        return None

    def has_identity(self, obj: Any) -> bool:
        return self.get_identity(obj) is not None

    def identify(self, obj: Any) -> int:
        existing = self.get_identity(obj)
        if existing is not None:
            return existing

        new_id = next(self._counter)
        self._issued += 1
        attributes = instance_dict(obj)
        if attributes is not None:
            attributes[IDENTITY_ATTRIBUTE] = new_id
        else:
            self._side_table[id(obj)] = (obj, new_id)
        return new_id


def instance_dict(obj: Any) -> Optional[dict]:
    try:
        attributes = object.__getattribute__(obj, "__dict__")
    except (AttributeError, TypeError):
        return None
    return attributes if isinstance(attributes, dict) else None


__all__ = ["IDENTITY_ATTRIBUTE", "IdentityRegistry", "instance_dict"]
