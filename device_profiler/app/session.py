"""
DemoSession - a tiny renderer driving the stub device API.

Each frame writes a uniform buffer, runs one compute pass and one render
pass, submits, and asks the queue for a completion signal without waiting
for it. With a non-zero latency those completions resolve one or more
frames later, which is what the async correlation view is for.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Optional, Set

import numpy as np

from ..core.asyncio_utils import add_task_exception_logger
from ..core.instrumentation import DeviceProfiler, FrameScheduler
from ..core.logging_utils import get_module_logger
from ..stub import GPU, BufferDescriptor, Canvas

UNIFORM_USAGE = 0x40 | 0x08  # UNIFORM | COPY_DST

SHADER_SOURCE = "@vertex fn vs_main() {} @fragment fn fs_main() {} @compute fn cs_main() {}"


class DemoSession:

    def __init__(
        self,
        profiler: DeviceProfiler,
        *,
        latency: float = 0.0,
        width: int = 640,
        height: int = 480,
    ) -> None:
        self.logger = get_module_logger("DemoSession")
        self.profiler = profiler
        self.gpu = GPU(latency=latency)
        self.canvas = Canvas(width, height)
        self.frame_number = 0

        self.device: Any = None
        self.context: Any = None
        self._render_pipeline: Any = None
        self._compute_pipeline: Any = None
        self._uniforms: Any = None
        self._bind_group: Any = None
        self._in_flight: Set[asyncio.Future[Any]] = set()

        profiler.wrap(self.gpu)
        # Contexts are created on demand, so instrument them at creation time.
        self.canvas.get_context = profiler.instrument_factory(
            self.canvas.get_context,
            lambda kind: kind == "gpu",
        )

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def setup(self) -> None:
        """Acquire a device and build the pipelines used by every frame."""
        adapter = await self.gpu.request_adapter({"power_preference": "high-performance"})
        if adapter is None:
            raise RuntimeError("No adapter available")
        self.device = await adapter.request_device({"label": "demo-device"})

        self.context = self.canvas.get_context("gpu")
        self.context.configure({"device": self.device, "format": self.gpu.get_preferred_format()})

        shader = self.device.create_shader_module({"code": SHADER_SOURCE, "label": "demo-shader"})
        self._render_pipeline = await self.device.create_render_pipeline_async({
            "label": "demo-render",
            "vertex": {"module": shader, "entry_point": "vs_main"},
            "fragment": {"module": shader, "entry_point": "fs_main"},
        })
        self._compute_pipeline = self.device.create_compute_pipeline({
            "label": "demo-compute",
            "compute": {"module": shader, "entry_point": "cs_main"},
        })
        self._uniforms = self.device.create_buffer(
            BufferDescriptor(size=256, usage=UNIFORM_USAGE, label="uniforms")
        )
        self._bind_group = self.device.create_bind_group({
            "layout": self._render_pipeline.get_bind_group_layout(0),
            "entries": [{"binding": 0, "resource": {"buffer": self._uniforms}}],
        })
        self.logger.info("Device ready on %s", self.device.adapter_name)

    def render_frame(self, timestamp_ms: float) -> None:
        if self.device is None:
            raise RuntimeError("setup() must complete before rendering")

        device = self.device
        uniforms = np.array([timestamp_ms / 1000.0, self.frame_number, 0.0, 0.0], dtype=np.float32)
        device.queue.write_buffer(self._uniforms, 0, uniforms.tobytes())

        encoder = device.create_command_encoder({"label": f"frame-{self.frame_number}"})

        compute_pass = encoder.begin_compute_pass()
        compute_pass.set_pipeline(self._compute_pipeline)
        compute_pass.set_bind_group(0, self._bind_group)
        compute_pass.dispatch(64)
        compute_pass.end_pass()

        view = self.context.get_current_texture().create_view()
        render_pass = encoder.begin_render_pass({
            "color_attachments": [{"view": view, "load_op": "clear", "clear_value": [0.0, 0.0, 0.0, 1.0]}],
        })
        render_pass.set_pipeline(self._render_pipeline)
        render_pass.set_bind_group(0, self._bind_group)
        render_pass.draw(3)
        render_pass.end_pass()

        device.queue.submit([encoder.finish()])
        self._track(device.queue.on_submitted_work_done())
        self.frame_number += 1

    def _track(self, pending: Any) -> None:
        if not inspect.isawaitable(pending):
            return
        pending = asyncio.ensure_future(pending)
        add_task_exception_logger(pending, logger=self.logger, context="work done")
        self._in_flight.add(pending)
        pending.add_done_callback(self._in_flight.discard)

    async def run(
        self,
        scheduler: FrameScheduler,
        frames: int,
        *,
        record_at: Optional[int] = 0,
        stop_at: Optional[int] = None,
    ) -> int:
        """Render ``frames`` frames, arming and stopping recording between frames."""
        for index in range(frames):
            if record_at is not None and index == record_at:
                self.profiler.start_recording()
            if stop_at is not None and index == stop_at:
                self.profiler.stop_recording()
            await scheduler.run(self.render_frame, 1)
        return frames

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for outstanding completion signals."""
        if not self._in_flight:
            return
        await asyncio.wait(list(self._in_flight), timeout=timeout)


__all__ = ["DemoSession"]
