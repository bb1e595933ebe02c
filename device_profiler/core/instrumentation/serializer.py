"""
Argument Serializer - bounded, human-oriented rendering of call arguments.

Rendering rules, in order:

- objects that already carry an identity -> ``TypeName@id`` back-reference
- ``None`` / booleans -> the Python literal
- text -> wrapped in backticks
- enum members -> ``EnumName.MEMBER``; numbers -> ``str(value)``
- functions, methods and classes -> their qualified name
- mappings -> ``{ "key": value, ... }``
- array-likes (sized and iterable) longer than the summary threshold ->
  ``TypeName(length)``; shorter ones element by element in brackets
- other objects with public attributes -> ``{ "attr": value, ... }``
- everything else -> ``repr``

A depth limit and a visited set along the current path keep cyclic plain
structures from recursing forever.
"""

from __future__ import annotations

import inspect
import numbers
from collections.abc import Mapping
from enum import Enum
from typing import Any, Iterable, Optional, Set, Tuple

from .identity import IdentityRegistry

DEFAULT_ARRAY_SUMMARY_THRESHOLD = 10
DEFAULT_MAX_DEPTH = 8
DEPTH_ELLIPSIS = "…"


class ArgumentSerializer:

    def __init__(
        self,
        registry: IdentityRegistry,
        *,
        array_summary_threshold: int = DEFAULT_ARRAY_SUMMARY_THRESHOLD,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._registry = registry
        self.array_summary_threshold = array_summary_threshold
        self.max_depth = max_depth

    # ------------------------------------------------------------------
    # Public API

    def serialize(self, value: Any, render_keys: bool = False) -> str:
        """Render ``value``.

        With ``render_keys`` a mapping or plain object is rendered as its bare
        ``"key": value`` member list, without the surrounding braces.
        """
        try:
            if render_keys and self._registry.get_identity(value) is None:
                members = self._members_of(value)
                if members is not None:
                    return self._render_members(members, 0, {id(value)})
            return self._render(value, 0, set())
        except Exception:
            return f"<unrepresentable {_type_name(value)}>"

    def serialize_call(self, args: Tuple[Any, ...], kwargs: Optional[Mapping] = None) -> str:
        """Render a call's arguments as they would appear between parentheses."""
        parts = [self.serialize(arg) for arg in args]
        for key, value in (kwargs or {}).items():
            parts.append(f"{key}={self.serialize(value)}")
        return ", ".join(parts)

    # ------------------------------------------------------------------
    # Rendering

    def _render(self, value: Any, depth: int, active: Set[int]) -> str:
        if value is None or isinstance(value, bool):
            return repr(value)
        if isinstance(value, str):
            return f"`{value}`"

        identity = self._registry.get_identity(value)
        if identity is not None:
            return f"{_type_name(value)}@{identity}"

        if isinstance(value, Enum):
            return f"{_type_name(value)}.{value.name}"
        if isinstance(value, numbers.Number):
            return str(value)
        if inspect.isclass(value) or inspect.isroutine(value):
            return getattr(value, "__qualname__", None) or getattr(value, "__name__", repr(value))

        if depth >= self.max_depth:
            return DEPTH_ELLIPSIS

        marker = id(value)
        if marker in active:
            return f"<circular {_type_name(value)}>"
        active.add(marker)
        try:
            if isinstance(value, Mapping):
                return self._braced(value.items(), depth, active)

            length = _array_length(value)
            if length is not None:
                if length > self.array_summary_threshold:
                    return f"{_type_name(value)}({length})"
                items = ", ".join(self._render(item, depth + 1, active) for item in value)
                return f"[{items}]"

            members = _public_attributes(value)
            if members is not None:
                return self._braced(members, depth, active)

            return _safe_repr(value)
        finally:
            active.discard(marker)

    def _braced(self, members: Iterable[Tuple[Any, Any]], depth: int, active: Set[int]) -> str:
        body = self._render_members(members, depth, active)
        return f"{{ {body} }}" if body else "{}"

    def _render_members(self, members: Iterable[Tuple[Any, Any]], depth: int, active: Set[int]) -> str:
        return ", ".join(
            f'"{key}": {self._render(member, depth + 1, active)}' for key, member in members
        )

    @staticmethod
    def _members_of(value: Any) -> Optional[Iterable[Tuple[Any, Any]]]:
        if isinstance(value, Mapping):
            return value.items()
        if isinstance(value, (str, bytes, numbers.Number)) or _array_length(value) is not None:
            return None
        return _public_attributes(value)


def _type_name(value: Any) -> str:
    return type(value).__name__


def _array_length(value: Any) -> Optional[int]:
    if isinstance(value, str) or not hasattr(value, "__len__") or not hasattr(value, "__iter__"):
        return None
    try:
        return len(value)
    except TypeError:
        # e.g. zero-dimensional numpy arrays
        return None


def _public_attributes(value: Any) -> Optional[list]:
    try:
        attributes = vars(value)
    except TypeError:
        return None
    if not isinstance(attributes, dict) or inspect.ismodule(value):
        return None
    return [(key, member) for key, member in attributes.items() if not key.startswith("_")]


def _safe_repr(value: Any) -> str:
    try:
        return repr(value)
    except Exception:
        return f"<unrepresentable {_type_name(value)}>"


__all__ = ["ArgumentSerializer", "DEFAULT_ARRAY_SUMMARY_THRESHOLD", "DEFAULT_MAX_DEPTH"]
