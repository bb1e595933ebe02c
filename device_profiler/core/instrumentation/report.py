"""
Report/Query Facility - read-only views over the recorded frames.

Consumers (CLI, REST API, external report renderers) see at most
``max_frames_to_record`` frames; indices beyond that, or beyond what was
recorded, are clamped to the last displayable frame instead of failing.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import numpy as np

from .records import AsyncResolutionRecord, Frame, MethodRecord
from .walker import SLOW_METHODS

if TYPE_CHECKING:
    from .context import ProfilerContext

DEFAULT_SLOW_FRAME_THRESHOLD_MS = 50.0

# Begin calls open a nested scope in the trace; a single end call closes it.
PASS_SCOPES: Dict[str, str] = {
    "begin_render_pass": "render",
    "begin_compute_pass": "compute",
}
PASS_END_METHOD = "end_pass"


@dataclass(frozen=True)
class TraceLine:
    text: str
    call_number: Optional[int] = None
    scope: Optional[str] = None
    slow: bool = False
    duration_ms: Optional[float] = None

    def render(self) -> str:
        if self.call_number is None:
            return self.text
        indent = "  " if self.scope else ""
        marker = "* " if self.slow else ""
        return f"{indent}{marker}{self.call_number}. {self.text}"


@dataclass(frozen=True)
class FrameSummary:
    index: int
    duration_ms: float
    next_gap_ms: Optional[float]
    slow: bool

    def summary_line(self) -> str:
        line = f"Frame: {self.index} Time: {self.duration_ms:.2f}"
        if self.next_gap_ms is not None:
            line += f" / {self.next_gap_ms:.2f}"
        return line


@dataclass(frozen=True)
class TimingStats:
    count: int
    mean_ms: float
    median_ms: float
    p95_ms: float
    max_ms: float


class ReportQuery:

    def __init__(
        self,
        context: "ProfilerContext",
        *,
        slow_frame_threshold_ms: float = DEFAULT_SLOW_FRAME_THRESHOLD_MS,
        slow_methods: Optional[Iterable[str]] = None,
    ) -> None:
        self._context = context
        self.slow_frame_threshold_ms = slow_frame_threshold_ms
        self.slow_methods = frozenset(slow_methods) if slow_methods is not None else SLOW_METHODS

    # ------------------------------------------------------------------
    # Frame access

    def frame_count(self) -> int:
        return self._context.frames.displayable_count

    def recorded_frame_count(self) -> int:
        return self._context.frames.recorded_count

    def clamp_index(self, index: int) -> Optional[int]:
        count = self.frame_count()
        if count == 0:
            return None
        return min(max(index, 0), count - 1)

    def frame_at(self, index: int) -> Optional[Frame]:
        clamped = self.clamp_index(index)
        if clamped is None:
            return None
        return self._context.frames.frames[clamped]

    def frames(self) -> List[Frame]:
        return list(self._context.frames.frames[: self.frame_count()])

    # ------------------------------------------------------------------
    # Traces

    def trace_lines(self, index: int) -> List[TraceLine]:
        frame = self.frame_at(index)
        if frame is None:
            return []

        lines = [TraceLine(text=f"FRAME {frame.index}")]
        scope: Optional[str] = None

        for number, command in enumerate(frame.commands, start=1):
            if isinstance(command, AsyncResolutionRecord):
                lines.append(TraceLine(
                    text=self._describe_resolution(command),
                    call_number=number,
                    scope=scope,
                    duration_ms=command.duration_ms,
                ))
                continue

            if command.method_name in PASS_SCOPES:
                scope = PASS_SCOPES[command.method_name]
                lines.append(TraceLine(text=f"[{scope} pass]"))

            lines.append(TraceLine(
                text=self._describe_call(command),
                call_number=number,
                scope=scope,
                slow=command.method_name in self.slow_methods,
                duration_ms=command.duration_ms,
            ))

            if command.method_name == PASS_END_METHOD:
                scope = None

        return lines

    def render_trace(self, index: int) -> List[str]:
        return [line.render() for line in self.trace_lines(index)]

    @staticmethod
    def _describe_call(record: MethodRecord) -> str:
        text = f"{record.type_name}@{record.object_id}.{record.method_name}({record.arguments})"
        if record.async_token is not None:
            text += f" -> async #{record.async_token}"
        if record.error:
            text += f" !! {record.error}"
        return text

    @staticmethod
    def _describe_resolution(record: AsyncResolutionRecord) -> str:
        text = f"async #{record.async_token} resolved in {record.duration_ms:.2f} ms"
        if record.error:
            return f"{text} !! {record.error}"
        return f"{text} -> {record.result}"

    # ------------------------------------------------------------------
    # Summaries

    def frame_summaries(self) -> List[FrameSummary]:
        recorded = self._context.frames.frames
        summaries = []
        for index in range(self.frame_count()):
            frame = recorded[index]
            next_gap = recorded[index + 1].time_since_last_frame_ms if index + 1 < len(recorded) else None
            summaries.append(FrameSummary(
                index=index,
                duration_ms=frame.duration_ms,
                next_gap_ms=next_gap,
                slow=next_gap is not None and next_gap > self.slow_frame_threshold_ms,
            ))
        return summaries

    def timing_stats(self) -> TimingStats:
        durations = np.fromiter((frame.duration_ms for frame in self.frames()), dtype=float)
        if durations.size == 0:
            return TimingStats(count=0, mean_ms=0.0, median_ms=0.0, p95_ms=0.0, max_ms=0.0)
        return TimingStats(
            count=int(durations.size),
            mean_ms=float(np.mean(durations)),
            median_ms=float(np.median(durations)),
            p95_ms=float(np.percentile(durations, 95)),
            max_ms=float(np.max(durations)),
        )

    def to_dict(self) -> Dict[str, Any]:
        context = self._context
        return {
            "state": context.frames.state.value,
            "frame_count": self.frame_count(),
            "recorded_frame_count": self.recorded_frame_count(),
            "max_frames_to_record": context.frames.max_frames_to_record,
            "stats": asdict(self.timing_stats()),
            "frames": [frame.to_dict() for frame in self.frames()],
            "pending_async": [asdict(call) for call in context.tracker.pending()],
            "async_resolutions": [resolution.to_dict() for resolution in context.tracker.resolutions()],
        }


__all__ = [
    "FrameSummary",
    "PASS_END_METHOD",
    "PASS_SCOPES",
    "ReportQuery",
    "TimingStats",
    "TraceLine",
]
