"""Call-trace profiler for object-oriented device APIs."""

from __future__ import annotations

from importlib import metadata
from typing import Optional, Sequence

try:
    __version__ = metadata.version("device-profiler")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"

from .app.master import main
from .app.master import run as _run_master
from .core import DeviceProfiler, FrameScheduler, ProfilerSettings, RecordingState, ReportQuery


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Convenience wrapper that runs the async demo entry point."""
    return _run_master(list(argv) if argv is not None else None)


__all__ = [
    "__version__",
    "DeviceProfiler",
    "FrameScheduler",
    "ProfilerSettings",
    "RecordingState",
    "ReportQuery",
    "main",
    "run",
]
