from .instrumentation import (
    DeviceProfiler,
    FrameScheduler,
    ProfilerContext,
    RecordingState,
    ReportQuery,
)
from .settings import ProfilerSettings, load_settings

__all__ = [
    'DeviceProfiler',
    'FrameScheduler',
    'ProfilerContext',
    'ProfilerSettings',
    'RecordingState',
    'ReportQuery',
    'load_settings',
]
