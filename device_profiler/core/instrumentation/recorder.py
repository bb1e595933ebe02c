"""Call Recorder - appends records to the currently open frame."""

from __future__ import annotations

from .frames import FrameLifecycleController
from .records import CommandRecord


class CallRecorder:

    def __init__(self, frames: FrameLifecycleController) -> None:
        self._frames = frames
        self._dropped = 0

    @property
    def is_recording(self) -> bool:
        return self._frames.is_recording and self._frames.current_frame is not None

    @property
    def dropped_count(self) -> int:
        """Records offered while no frame was open."""
        return self._dropped

    def record(self, entry: CommandRecord) -> bool:
        """Append ``entry`` in call order; a no-op when no frame is open."""
        if self._frames.append_command(entry):
            return True
        self._dropped += 1
        return False


__all__ = ["CallRecorder"]
