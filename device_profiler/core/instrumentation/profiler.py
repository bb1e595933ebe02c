"""
DeviceProfiler - public entry point for instrumenting a device API.

Typical use::

    profiler = DeviceProfiler(max_frames_to_record=300)
    profiler.wrap(gpu)
    profiler.start_recording()
    for _ in range(frames):
        with profiler.frame():
            render()
    print("\\n".join(profiler.report.render_trace(0)))
"""

from __future__ import annotations

import contextlib
import functools
import time
from typing import Any, Callable, Iterable, Iterator, Optional, TypeVar

from ..logging_utils import get_module_logger
from ..settings import ProfilerSettings
from .async_tracker import AsyncCorrelationTracker
from .context import ProfilerContext
from .frames import DEFAULT_MAX_FRAMES_TO_RECORD, RecordingState, StateChangeCallback
from .records import Frame
from .report import DEFAULT_SLOW_FRAME_THRESHOLD_MS, ReportQuery
from .serializer import DEFAULT_ARRAY_SUMMARY_THRESHOLD, DEFAULT_MAX_DEPTH

F = TypeVar("F", bound=Callable[..., Any])


class DeviceProfiler:

    def __init__(
        self,
        max_frames_to_record: int = DEFAULT_MAX_FRAMES_TO_RECORD,
        *,
        record_on_start: bool = False,
        auto_stop_at_capacity: bool = False,
        slow_frame_threshold_ms: float = DEFAULT_SLOW_FRAME_THRESHOLD_MS,
        array_summary_threshold: int = DEFAULT_ARRAY_SUMMARY_THRESHOLD,
        max_serialize_depth: int = DEFAULT_MAX_DEPTH,
        skip_methods: Optional[Iterable[str]] = None,
        async_methods: Optional[Iterable[str]] = None,
        slow_methods: Optional[Iterable[str]] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.logger = get_module_logger("DeviceProfiler")
        self.context = ProfilerContext(
            max_frames_to_record,
            clock=clock,
            auto_stop_at_capacity=auto_stop_at_capacity,
            array_summary_threshold=array_summary_threshold,
            max_serialize_depth=max_serialize_depth,
            skip_methods=skip_methods,
            async_methods=async_methods,
        )
        self.report = ReportQuery(
            self.context,
            slow_frame_threshold_ms=slow_frame_threshold_ms,
            slow_methods=slow_methods,
        )
        self.logger.info("Profiler ready (capacity %d frames)", max_frames_to_record)

        if record_on_start:
            self.start_recording()

    @classmethod
    def from_settings(cls, settings: ProfilerSettings, **kwargs: Any) -> "DeviceProfiler":
        return cls(
            settings.max_frames_to_record,
            record_on_start=settings.record_on_start,
            auto_stop_at_capacity=settings.auto_stop_at_capacity,
            slow_frame_threshold_ms=settings.slow_frame_threshold_ms,
            array_summary_threshold=settings.array_summary_threshold,
            max_serialize_depth=settings.max_serialize_depth,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Instrumentation

    def wrap(self, obj: Any) -> bool:
        """Instrument ``obj`` and its reachable sub-objects; idempotent."""
        wrapped = self.context.walker.wrap(obj)
        if wrapped:
            self.logger.debug("Instrumented %s@%d", type(obj).__name__, self.context.registry.identify(obj))
        return wrapped

    def identity_of(self, obj: Any) -> Optional[int]:
        return self.context.registry.get_identity(obj)

    def instrument_factory(
        self,
        factory: F,
        predicate: Optional[Callable[..., bool]] = None,
    ) -> F:
        """Return ``factory`` wrapped so that every object it creates is instrumented.

        This is the hook for surface/context creation: whoever creates new
        renderable contexts routes creation through the returned callable.
        ``predicate`` receives the factory arguments and can limit which
        creations are instrumented.
        """

        @functools.wraps(factory)
        def instrumented(*args, **kwargs):
            created = factory(*args, **kwargs)
            if created is not None and (predicate is None or predicate(*args, **kwargs)):
                self.wrap(created)
            return created

        return instrumented  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Recording control

    @property
    def state(self) -> RecordingState:
        return self.context.frames.state

    @property
    def is_recording(self) -> bool:
        return self.context.frames.is_recording

    @property
    def tracker(self) -> AsyncCorrelationTracker:
        return self.context.tracker

    def start_recording(self) -> None:
        """Discard previous recordings and record from the next frame on."""
        self.context.reset_recording()

    def stop_recording(self) -> None:
        self.context.frames.stop_recording()

    def set_state_change_callback(self, callback: Optional[StateChangeCallback]) -> None:
        self.context.frames.set_state_change_callback(callback)

    # ------------------------------------------------------------------
    # Frame boundary signals

    def frame_start(self) -> Optional[Frame]:
        return self.context.frames.frame_start()

    def frame_end(self) -> Optional[Frame]:
        return self.context.frames.frame_end()

    @contextlib.contextmanager
    def frame(self) -> Iterator[Optional[Frame]]:
        """Bracket one execution epoch; the frame is sealed even if the body raises."""
        opened = self.frame_start()
        try:
            yield opened
        finally:
            self.frame_end()


__all__ = ["DeviceProfiler"]
