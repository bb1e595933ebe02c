"""
ProfilerContext - the one owner of the profiler's shared state.

Identity registry, frame history and async correlations are process-wide
mutable state for one profiler. They live here and every component reaches
them through the context it was built with. Access assumes the cooperative
single-threaded asyncio model: all calls happen on the loop thread.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Optional

from .async_tracker import AsyncCorrelationTracker
from .frames import DEFAULT_MAX_FRAMES_TO_RECORD, FrameLifecycleController
from .identity import IdentityRegistry
from .interceptor import MethodInterceptor
from .recorder import CallRecorder
from .serializer import DEFAULT_ARRAY_SUMMARY_THRESHOLD, DEFAULT_MAX_DEPTH, ArgumentSerializer
from .walker import ObjectGraphWalker


class ProfilerContext:

    def __init__(
        self,
        max_frames_to_record: int = DEFAULT_MAX_FRAMES_TO_RECORD,
        *,
        clock: Callable[[], float] = time.perf_counter,
        auto_stop_at_capacity: bool = False,
        array_summary_threshold: int = DEFAULT_ARRAY_SUMMARY_THRESHOLD,
        max_serialize_depth: int = DEFAULT_MAX_DEPTH,
        skip_methods: Optional[Iterable[str]] = None,
        async_methods: Optional[Iterable[str]] = None,
    ) -> None:
        self.clock = clock
        self.registry = IdentityRegistry()
        self.serializer = ArgumentSerializer(
            self.registry,
            array_summary_threshold=array_summary_threshold,
            max_depth=max_serialize_depth,
        )
        self.frames = FrameLifecycleController(
            max_frames_to_record,
            clock=clock,
            auto_stop_at_capacity=auto_stop_at_capacity,
        )
        self.recorder = CallRecorder(self.frames)
        self.tracker = AsyncCorrelationTracker()
        self.interceptor = MethodInterceptor(self)
        self.walker = ObjectGraphWalker(self, skip_methods=skip_methods, async_methods=async_methods)

    def adopt(self, value: Any) -> None:
        """Bring a call result into the instrumented graph if it is a new object."""
        self.walker.wrap(value)

    def reset_recording(self) -> None:
        """Start over: clear frames and completed correlations, arm recording."""
        self.tracker.clear_resolved()
        self.frames.start_recording()


__all__ = ["ProfilerContext"]
