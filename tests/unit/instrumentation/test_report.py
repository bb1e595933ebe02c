"""Unit tests for ReportQuery traces, summaries and statistics."""

import asyncio
import json

import pytest

from device_profiler.core.instrumentation import DeviceProfiler


class Buffer:
    def __init__(self, size):
        self.size = size


class RenderPass:
    def set_pipeline(self, pipeline):
        pass

    def draw(self, vertex_count):
        pass

    def end_pass(self):
        pass


class ComputePass:
    def dispatch(self, x):
        pass

    def end_pass(self):
        pass


class Encoder:
    def begin_render_pass(self, descriptor):
        return RenderPass()

    def begin_compute_pass(self):
        return ComputePass()

    def finish(self):
        return "finished"


class Device:
    def create_buffer(self, size):
        return Buffer(size)

    def create_command_encoder(self):
        return Encoder()

    def submit(self, fail=False):
        if fail:
            raise ValueError("queue full")

    async def map_async(self, mode):
        await asyncio.sleep(0)
        return mode


@pytest.fixture
def device(profiler) -> Device:
    device = Device()
    profiler.wrap(device)
    return device


def _run_frames(profiler, clock, durations, gaps=None):
    """Seal one empty frame per duration, idling ``gaps[i]`` ms after frame i."""
    gaps = gaps or [0.0] * len(durations)
    for duration, gap in zip(durations, gaps):
        with profiler.frame():
            clock.advance(duration)
        clock.advance(gap)


class TestTrace:

    def test_render_pass_scope_and_slow_marker(self, profiler, device):
        profiler.start_recording()

        with profiler.frame():
            device.create_buffer(16)
            encoder = device.create_command_encoder()
            render_pass = encoder.begin_render_pass({"label": "main"})
            render_pass.draw(3)
            render_pass.end_pass()
            encoder.finish()

        assert profiler.report.render_trace(0) == [
            "FRAME 0",
            "* 1. Device@1.create_buffer(16)",
            "2. Device@1.create_command_encoder()",
            "[render pass]",
            '  3. Encoder@3.begin_render_pass({ "label": `main` })',
            "  4. RenderPass@4.draw(3)",
            "  5. RenderPass@4.end_pass()",
            "6. Encoder@3.finish()",
        ]

    def test_compute_pass_header(self, profiler, device):
        profiler.start_recording()

        with profiler.frame():
            encoder = device.create_command_encoder()
            compute_pass = encoder.begin_compute_pass()
            compute_pass.dispatch(8)
            compute_pass.end_pass()

        lines = profiler.report.render_trace(0)
        assert "[compute pass]" in lines
        assert lines[-1].startswith("  ")

    def test_trace_line_metadata(self, profiler, device):
        profiler.start_recording()

        with profiler.frame():
            device.create_buffer(4)

        title, call = profiler.report.trace_lines(0)
        assert title.call_number is None
        assert call.call_number == 1
        assert call.slow is True
        assert call.scope is None
        assert call.duration_ms == pytest.approx(0.0)

    def test_failed_call_suffix(self, profiler, device):
        profiler.start_recording()

        with profiler.frame():
            with pytest.raises(ValueError):
                device.submit(fail=True)

        assert profiler.report.render_trace(0)[1] == "1. Device@1.submit(fail=True) !! ValueError: queue full"

    @pytest.mark.asyncio
    async def test_async_start_and_resolution_lines(self, profiler, device):
        profiler.start_recording()

        with profiler.frame():
            await device.map_async(1)

        assert profiler.report.render_trace(0)[1:] == [
            "1. Device@1.map_async(1) -> async #1",
            "2. async #1 resolved in 0.00 ms -> 1",
        ]

    def test_empty_history(self, profiler):
        assert profiler.report.frame_at(0) is None
        assert profiler.report.render_trace(0) == []
        assert profiler.report.clamp_index(3) is None


class TestClamping:

    def test_index_clamped_to_last_frame(self, profiler, clock):
        profiler.start_recording()
        _run_frames(profiler, clock, [1.0, 1.0, 1.0])

        assert profiler.report.frame_at(99).index == 2
        assert profiler.report.frame_at(-4).index == 0
        assert profiler.report.render_trace(99)[0] == "FRAME 2"

    def test_clamped_to_capacity(self, clock):
        profiler = DeviceProfiler(2, clock=clock)
        profiler.start_recording()
        _run_frames(profiler, clock, [1.0] * 5)

        report = profiler.report
        assert report.recorded_frame_count() == 5
        assert report.frame_count() == 2
        assert len(report.frames()) == 2
        assert report.render_trace(4)[0] == "FRAME 1"


class TestSummaries:

    def test_summary_lines_and_slow_flag(self, profiler, clock):
        profiler.start_recording()
        _run_frames(profiler, clock, [4.0, 2.0], gaps=[56.0, 0.0])

        first, second = profiler.report.frame_summaries()

        assert first.summary_line() == "Frame: 0 Time: 4.00 / 60.00"
        assert first.slow is True
        assert second.summary_line() == "Frame: 1 Time: 2.00"
        assert second.next_gap_ms is None
        assert second.slow is False

    def test_threshold_is_configurable(self, clock):
        profiler = DeviceProfiler(clock=clock, slow_frame_threshold_ms=100.0)
        profiler.start_recording()
        _run_frames(profiler, clock, [4.0, 2.0], gaps=[56.0, 0.0])

        assert profiler.report.frame_summaries()[0].slow is False


class TestStatsAndExport:

    def test_timing_stats(self, profiler, clock):
        profiler.start_recording()
        _run_frames(profiler, clock, [4.0, 2.0])

        stats = profiler.report.timing_stats()

        assert stats.count == 2
        assert stats.mean_ms == pytest.approx(3.0)
        assert stats.median_ms == pytest.approx(3.0)
        assert stats.p95_ms == pytest.approx(3.9)
        assert stats.max_ms == pytest.approx(4.0)

    def test_timing_stats_empty(self, profiler):
        stats = profiler.report.timing_stats()

        assert stats.count == 0
        assert stats.max_ms == 0.0

    def test_to_dict_is_json_ready(self, profiler, device, clock):
        profiler.start_recording()
        with profiler.frame():
            device.create_buffer(8)

        exported = json.loads(json.dumps(profiler.report.to_dict()))

        assert exported["state"] == "recording"
        assert exported["frame_count"] == 1
        assert exported["max_frames_to_record"] == 1000
        command = exported["frames"][0]["commands"][0]
        assert command["kind"] == "call"
        assert command["method_name"] == "create_buffer"
        assert exported["pending_async"] == []
