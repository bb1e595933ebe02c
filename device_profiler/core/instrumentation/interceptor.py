"""
Method Interceptor - replaces one method on one object with a timing shim.

The shim calls the original with the original arguments and returns its
result (or raises its exception) unchanged. Around that it measures the
call, hands any new object result to the graph walker, and, while a frame
is being recorded, pushes a record to the call recorder.

Asynchronous methods are called immediately and their start is recorded at
call time. The caller gets back a task that awaits the original awaitable,
resolves the pending correlation entry, and yields the original result.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Tuple

from ..logging_utils import get_module_logger
from .async_tracker import PendingAsyncCall
from .identity import instance_dict
from .records import MethodRecord, describe_error

if TYPE_CHECKING:
    from .context import ProfilerContext

INTERCEPTED_ATTRIBUTE = "_profiler_intercepted"


class MethodInterceptor:

    def __init__(self, context: "ProfilerContext") -> None:
        self.logger = get_module_logger("Interceptor")
        self._context = context

    # ------------------------------------------------------------------
    # Installation

    @staticmethod
    def is_intercepted(obj: Any, method_name: str) -> bool:
        attributes = instance_dict(obj)
        if attributes is None:
            return False
        current = attributes.get(method_name)
        return getattr(current, INTERCEPTED_ATTRIBUTE, False) is True

    def install(self, obj: Any, method_name: str, is_async: bool = False) -> bool:
        """Install the shim; returns False when already installed or not possible."""
        if self.is_intercepted(obj, method_name):
            return False

        try:
            original = getattr(obj, method_name)
        except AttributeError:
            return False
        if not callable(original):
            return False

        if is_async:
            shim = self._make_async_shim(obj, method_name, original)
        else:
            shim = self._make_sync_shim(obj, method_name, original)
        setattr(shim, INTERCEPTED_ATTRIBUTE, True)

        # Bypasses __setattr__, the same way the identity is stored.
        attributes = instance_dict(obj)
        try:
            if attributes is not None:
                attributes[method_name] = shim
            else:
                setattr(obj, method_name, shim)
        except (AttributeError, TypeError) as exc:
            self.logger.debug("Cannot intercept %s.%s: %s", type(obj).__name__, method_name, exc)
            return False

        self.logger.debug(
            "Intercepted %s.%s (%s)", type(obj).__name__, method_name, "async" if is_async else "sync"
        )
        return True

    # ------------------------------------------------------------------
    # Synchronous path

    def _make_sync_shim(self, obj: Any, method_name: str, original: Callable[..., Any]) -> Callable[..., Any]:
        clock = self._context.clock

        @functools.wraps(original)
        def intercepted(*args, **kwargs):
            start = clock()
            try:
                result = original(*args, **kwargs)
            except Exception as exc:
                self._record_call(obj, method_name, args, kwargs, (clock() - start) * 1000.0, error=exc)
                raise
            duration_ms = (clock() - start) * 1000.0
            self._context.adopt(result)
            self._record_call(obj, method_name, args, kwargs, duration_ms)
            return result

        return intercepted

    def _record_call(
        self,
        obj: Any,
        method_name: str,
        args: Tuple[Any, ...],
        kwargs: Mapping[str, Any],
        duration_ms: float,
        error: Optional[BaseException] = None,
    ) -> None:
        context = self._context
        if not context.recorder.is_recording:
            return
        context.recorder.record(
            MethodRecord(
                type_name=type(obj).__name__,
                object_id=context.registry.identify(obj),
                method_name=method_name,
                arguments=context.serializer.serialize_call(args, kwargs),
                duration_ms=duration_ms,
                error=describe_error(error) if error is not None else None,
            )
        )

    # ------------------------------------------------------------------
    # Asynchronous path

    def _make_async_shim(self, obj: Any, method_name: str, original: Callable[..., Any]) -> Callable[..., Any]:
        clock = self._context.clock

        @functools.wraps(original)
        def intercepted(*args, **kwargs):
            start = clock()
            try:
                pending = original(*args, **kwargs)
            except Exception as exc:
                self._record_call(obj, method_name, args, kwargs, (clock() - start) * 1000.0, error=exc)
                raise

            token = self._begin_async(obj, method_name, args, kwargs, start)

            if not inspect.isawaitable(pending):
                self._finish_async(token, pending, clock())
                return pending

            settle = self._settle(pending, token)
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # No loop yet: hand back the coroutine, awaiting it gives the same value.
                return settle
            return loop.create_task(settle, name=f"profiler:{type(obj).__name__}.{method_name}")

        return intercepted

    def _begin_async(
        self,
        obj: Any,
        method_name: str,
        args: Tuple[Any, ...],
        kwargs: Mapping[str, Any],
        start: float,
    ) -> Optional[int]:
        context = self._context
        if not context.recorder.is_recording:
            return None

        tracker = context.tracker
        token = tracker.next_token()
        object_id = context.registry.identify(obj)
        current = context.frames.current_frame
        tracker.register(
            PendingAsyncCall(
                token=token,
                object_id=object_id,
                type_name=type(obj).__name__,
                method_name=method_name,
                start_time=start,
                frame_index=current.index if current is not None else None,
            )
        )
        context.recorder.record(
            MethodRecord(
                type_name=type(obj).__name__,
                object_id=object_id,
                method_name=method_name,
                arguments=context.serializer.serialize_call(args, kwargs),
                async_token=token,
            )
        )
        return token

    async def _settle(self, pending: Awaitable[Any], token: Optional[int]) -> Any:
        clock = self._context.clock
        try:
            result = await pending
        except Exception as exc:
            self._finish_async(token, None, clock(), error=exc)
            raise
        self._finish_async(token, result, clock())
        return result

    def _finish_async(
        self,
        token: Optional[int],
        result: Any,
        end_time: float,
        error: Optional[BaseException] = None,
    ) -> None:
        context = self._context
        if error is None:
            # Results that already carry an identity are left as they are.
            context.adopt(result)
        if token is None:
            return

        resolution = context.tracker.resolve(
            token,
            end_time,
            result=context.serializer.serialize(result) if error is None else "",
            error=describe_error(error) if error is not None else None,
        )
        if resolution is not None:
            context.recorder.record(resolution)


__all__ = ["INTERCEPTED_ATTRIBUTE", "MethodInterceptor"]
