"""
API Controller - translates REST requests into profiler operations.

Handlers never touch the profiler directly; they go through this class so
the routes stay thin and the controller can be exercised without HTTP.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from ..instrumentation import DeviceProfiler
from ..logging_utils import get_module_logger


class ProfilerAPIController:

    def __init__(self, profiler: DeviceProfiler, version: str = "0.0.0"):
        self.logger = get_module_logger("APIController")
        self._profiler = profiler
        self._version = version

    @property
    def profiler(self) -> DeviceProfiler:
        return self._profiler

    # System

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "version": self._version}

    async def get_status(self) -> Dict[str, Any]:
        profiler = self._profiler
        report = profiler.report
        frames = profiler.context.frames
        return {
            "state": profiler.state.value,
            "recording": profiler.is_recording,
            "frame_count": report.frame_count(),
            "recorded_frame_count": report.recorded_frame_count(),
            "max_frames_to_record": frames.max_frames_to_record,
            "at_capacity": frames.at_capacity,
            "instrumented_objects": profiler.context.registry.count,
            "pending_async": profiler.tracker.pending_count,
        }

    # Recording control

    async def start_recording(self) -> Dict[str, Any]:
        self._profiler.start_recording()
        self.logger.info("Recording armed via API")
        return {"success": True, "state": self._profiler.state.value}

    async def stop_recording(self) -> Dict[str, Any]:
        self._profiler.stop_recording()
        self.logger.info("Recording stopped via API")
        return {"success": True, "state": self._profiler.state.value}

    # Frames

    async def list_frames(self) -> Dict[str, Any]:
        summaries = self._profiler.report.frame_summaries()
        return {
            "frames": [
                {**asdict(summary), "summary": summary.summary_line()}
                for summary in summaries
            ],
            "count": len(summaries),
        }

    async def get_frame(self, index: int) -> Optional[Dict[str, Any]]:
        frame = self._profiler.report.frame_at(index)
        if frame is None:
            return None
        return {"requested_index": index, **frame.to_dict()}

    async def get_trace(self, index: int) -> Optional[Dict[str, Any]]:
        report = self._profiler.report
        resolved = report.clamp_index(index)
        if resolved is None:
            return None
        return {
            "requested_index": index,
            "index": resolved,
            "lines": report.render_trace(resolved),
        }

    async def get_async_calls(self) -> Dict[str, List[Dict[str, Any]]]:
        tracker = self._profiler.tracker
        return {
            "pending": [asdict(call) for call in tracker.pending()],
            "resolved": [resolution.to_dict() for resolution in tracker.resolutions()],
        }

    async def get_stats(self) -> Dict[str, Any]:
        return asdict(self._profiler.report.timing_stats())

    async def get_report(self) -> Dict[str, Any]:
        return self._profiler.report.to_dict()


__all__ = ["ProfilerAPIController"]
