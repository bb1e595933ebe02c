"""
Object Graph Walker - discovers and instruments reachable device objects.

``wrap(obj)`` gives the object an identity, intercepts each of its public
methods, and descends into public attributes that are themselves objects
exposing at least one interceptable method. The identity check doubles as
the visited set, so cycles and repeated wraps terminate immediately.
"""

from __future__ import annotations

import inspect
import numbers
from collections import deque
from enum import Enum
from typing import TYPE_CHECKING, Any, FrozenSet, Iterable, Iterator, Optional, Tuple

from ..logging_utils import get_module_logger
from .identity import instance_dict

if TYPE_CHECKING:
    from .context import ProfilerContext


# Iteration/introspection helpers and lifecycle hooks that must stay untouched.
SKIP_METHODS: FrozenSet[str] = frozenset({
    "items",
    "keys",
    "values",
    "has",
    "for_each",
    "to_string",
    "get_context",
    "get_preferred_format",
    "push_error_scope",
    "pop_error_scope",
})

ASYNC_METHODS: FrozenSet[str] = frozenset({
    "request_adapter",
    "request_device",
    "create_compute_pipeline_async",
    "create_render_pipeline_async",
    "on_submitted_work_done",
    "map_async",
})

# Resource creation calls, highlighted in traces.
SLOW_METHODS: FrozenSet[str] = frozenset({
    "create_buffer",
    "create_bind_group",
    "create_shader_module",
    "create_render_pipeline",
    "create_compute_pipeline",
})


def is_method(obj: Any, member: Any) -> bool:
    if inspect.ismethod(member) or inspect.isfunction(member):
        return True
    return inspect.isbuiltin(member) and getattr(member, "__self__", None) is obj


def is_instrumentable(value: Any) -> bool:
    """True for instances of user-defined classes that can carry attributes."""
    if value is None or isinstance(value, (str, bytes, bytearray, numbers.Number, Enum)):
        return False
    if inspect.isclass(value) or inspect.ismodule(value) or inspect.isroutine(value):
        return False
    value_type = type(value)
    if value_type.__module__ == "builtins":
        return False
    return instance_dict(value) is not None or hasattr(value_type, "__slots__")


class ObjectGraphWalker:

    def __init__(
        self,
        context: "ProfilerContext",
        *,
        skip_methods: Optional[Iterable[str]] = None,
        async_methods: Optional[Iterable[str]] = None,
    ) -> None:
        self.logger = get_module_logger("GraphWalker")
        self._context = context
        self.skip_methods = frozenset(skip_methods) if skip_methods is not None else SKIP_METHODS
        self.async_methods = frozenset(async_methods) if async_methods is not None else ASYNC_METHODS

    def is_async_method(self, name: str, member: Any) -> bool:
        return name in self.async_methods or inspect.iscoroutinefunction(member)

    def has_methods(self, obj: Any) -> bool:
        return any(
            is_method(obj, member) and name not in self.skip_methods
            for name, member in self._members(obj)
        )

    def wrap(self, obj: Any) -> bool:
        """Instrument ``obj`` and everything reachable from it.

        Returns False when ``obj`` is not an instrumentable object or was
        already wrapped; both cases are no-ops.
        """
        registry = self._context.registry
        if not is_instrumentable(obj) or registry.has_identity(obj):
            return False

        queue = deque([obj])
        while queue:
            current = queue.popleft()
            if registry.has_identity(current):
                continue
            object_id = registry.identify(current)
            queue.extend(self._instrument_members(current, object_id))
        return True

    def _instrument_members(self, obj: Any, object_id: int) -> Iterator[Any]:
        registry = self._context.registry
        interceptor = self._context.interceptor
        installed = 0

        for name, member in self._members(obj):
            if is_method(obj, member):
                if name in self.skip_methods:
                    continue
                if interceptor.install(obj, name, self.is_async_method(name, member)):
                    installed += 1
            elif is_instrumentable(member) and not registry.has_identity(member) and self.has_methods(member):
                yield member

        self.logger.debug("Wrapped %s@%d (%d methods)", type(obj).__name__, object_id, installed)

    def _members(self, obj: Any) -> Iterator[Tuple[str, Any]]:
        for name in dir(obj):
            if name.startswith("_"):
                continue
            try:
                member = getattr(obj, name)
            except Exception as exc:
                self.logger.debug("Skipping %s.%s: %s", type(obj).__name__, name, exc)
                continue
            yield name, member


__all__ = [
    "ASYNC_METHODS",
    "ObjectGraphWalker",
    "SKIP_METHODS",
    "SLOW_METHODS",
    "is_instrumentable",
    "is_method",
]
