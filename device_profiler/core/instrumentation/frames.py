"""
Frame Lifecycle Controller - recording state and frame boundaries.

States:
- IDLE: nothing is recorded
- ARMED_TO_START: a start was requested; recording begins at the next
  frame-start signal so a frame is never captured partially
- RECORDING: every frame-start opens a frame, every frame-end seals it

Transitions:
- any -> ARMED_TO_START: start_recording() (clears the frame history)
- ARMED_TO_START -> RECORDING: next frame_start()
- any -> IDLE: stop_recording(); an already open frame is still sealed by
  its own frame_end(), it just receives no further commands
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..logging_utils import get_module_logger
from .records import CommandRecord, Frame

DEFAULT_MAX_FRAMES_TO_RECORD = 1000


class RecordingState(Enum):
    IDLE = "idle"
    ARMED_TO_START = "armed_to_start"
    RECORDING = "recording"


Clock = Callable[[], float]
StateChangeCallback = Callable[[RecordingState, RecordingState], None]


class FrameLifecycleController:

    def __init__(
        self,
        max_frames_to_record: int = DEFAULT_MAX_FRAMES_TO_RECORD,
        *,
        clock: Clock = time.perf_counter,
        auto_stop_at_capacity: bool = False,
    ) -> None:
        if max_frames_to_record <= 0:
            raise ValueError("max_frames_to_record must be positive")

        self.logger = get_module_logger("FrameLifecycle")
        self.max_frames_to_record = max_frames_to_record
        self.auto_stop_at_capacity = auto_stop_at_capacity
        self._clock = clock

        self._state = RecordingState.IDLE
        self._frames: List[Frame] = []
        self._current: Optional[Frame] = None
        self._frame_start_time: Optional[float] = None
        self._last_frame_start: Optional[float] = None
        self._capacity_warned = False

        self._state_change_callback: Optional[StateChangeCallback] = None

    def set_state_change_callback(self, callback: Optional[StateChangeCallback]) -> None:
        """Set callback invoked with (old_state, new_state) on every transition."""
        self._state_change_callback = callback

    # ------------------------------------------------------------------
    # State

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecordingState.RECORDING

    @property
    def current_frame(self) -> Optional[Frame]:
        return self._current

    @property
    def frames(self) -> Sequence[Frame]:
        return tuple(self._frames)

    @property
    def recorded_count(self) -> int:
        return len(self._frames)

    @property
    def displayable_count(self) -> int:
        return min(len(self._frames), self.max_frames_to_record)

    @property
    def at_capacity(self) -> bool:
        return len(self._frames) >= self.max_frames_to_record

    def _set_state(self, state: RecordingState) -> None:
        old_state = self._state
        if old_state is state:
            return

        self._state = state
        self.logger.info("Recording state: %s -> %s", old_state.value, state.value)

        if self._state_change_callback:
            try:
                self._state_change_callback(old_state, state)
            except Exception as e:
                self.logger.error("State change callback error: %s", e)

    # ------------------------------------------------------------------
    # Start / stop requests

    def start_recording(self) -> None:
        """Clear all recorded frames and arm recording for the next frame."""
        self.clear()
        self._set_state(RecordingState.ARMED_TO_START)

    def stop_recording(self) -> None:
        self._set_state(RecordingState.IDLE)

    def clear(self) -> None:
        self._frames.clear()
        self._current = None
        self._frame_start_time = None
        self._last_frame_start = None
        self._capacity_warned = False

    # ------------------------------------------------------------------
    # Frame boundary signals

    def frame_start(self) -> Optional[Frame]:
        if self._state is RecordingState.ARMED_TO_START:
            self._set_state(RecordingState.RECORDING)

        if self._state is not RecordingState.RECORDING:
            return None

        if self._current is not None:
            self.logger.warning("Frame start while frame %d is still open; discarding it", self._current.index)

        now = self._clock()
        since_last = 0.0
        if self._last_frame_start is not None:
            since_last = (now - self._last_frame_start) * 1000.0
        self._last_frame_start = now
        self._frame_start_time = now

        self._current = Frame(index=len(self._frames), time_since_last_frame_ms=since_last)
        return self._current

    def frame_end(self) -> Optional[Frame]:
        frame = self._current
        if frame is None:
            return None

        now = self._clock()
        frame.duration_ms = (now - self._frame_start_time) * 1000.0
        self._current = None
        self._frames.append(frame)

        if self.at_capacity:
            self._on_capacity_reached()
        return frame

    def append_command(self, record: CommandRecord) -> bool:
        if self._state is not RecordingState.RECORDING or self._current is None:
            return False
        self._current.commands.append(record)
        return True

    def _on_capacity_reached(self) -> None:
        if not self._capacity_warned:
            self._capacity_warned = True
            self.logger.warning(
                "Recorded %d frames (capacity %d); later frames are kept but not displayable",
                len(self._frames),
                self.max_frames_to_record,
            )
        if self.auto_stop_at_capacity and self._state is not RecordingState.IDLE:
            self.logger.info("Capacity reached, stopping recording")
            self.stop_recording()


__all__ = [
    "DEFAULT_MAX_FRAMES_TO_RECORD",
    "FrameLifecycleController",
    "RecordingState",
]
