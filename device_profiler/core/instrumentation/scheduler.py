"""
FrameScheduler - emits frame-boundary signals around per-frame callbacks.

``request_animation_frame(callback)`` schedules ``callback(timestamp_ms)`` on
the running loop at the next tick and brackets it with the profiler's
``frame_start()`` / ``frame_end()``. Callbacks may be plain functions or
coroutine functions; coroutine callbacks are awaited before the frame ends.
Requested frames run one at a time, in request order.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Optional, Set, Union

from ..asyncio_utils import create_logged_task
from ..logging_utils import get_module_logger
from .profiler import DeviceProfiler

FrameCallback = Callable[[float], Union[None, Awaitable[None]]]


class FrameScheduler:

    def __init__(
        self,
        profiler: DeviceProfiler,
        *,
        fps: float = 60.0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.logger = get_module_logger("FrameScheduler")
        self.profiler = profiler
        self.frame_interval = 1.0 / fps
        self._loop = loop
        self._pending: Set[asyncio.Task[Any]] = set()
        self._frame_lock: Optional[asyncio.Lock] = None
        self._frames_run = 0

    @property
    def frames_run(self) -> int:
        return self._frames_run

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def request_animation_frame(self, callback: FrameCallback) -> asyncio.Task[None]:
        """Run ``callback`` as its own frame on the next loop tick."""
        return create_logged_task(
            self._run_frame(callback),
            logger=self.logger,
            context="animation frame",
            loop=self._get_loop(),
            pending=self._pending,
        )

    async def _run_frame(self, callback: FrameCallback) -> None:
        # Frames never overlap: a callback that awaits holds the boundary
        # until it finishes, later requests queue behind it in FIFO order.
        if self._frame_lock is None:
            self._frame_lock = asyncio.Lock()
        async with self._frame_lock:
            with self.profiler.frame():
                outcome = callback(time.perf_counter() * 1000.0)
                if inspect.isawaitable(outcome):
                    await outcome
            self._frames_run += 1

    async def run(self, render: FrameCallback, frames: int) -> int:
        """Drive ``frames`` consecutive frames at the configured rate."""
        loop = self._get_loop()
        for _ in range(frames):
            started = loop.time()
            await self._run_frame(render)
            remaining = self.frame_interval - (loop.time() - started)
            # Yield at least once so completions from async calls can land.
            await asyncio.sleep(max(0.0, remaining))
        return frames

    async def drain(self) -> None:
        """Wait for every frame requested through request_animation_frame."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = ["FrameScheduler", "FrameCallback"]
