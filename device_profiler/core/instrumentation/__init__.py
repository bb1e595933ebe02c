"""Call interception, frame recording and trace reporting for device APIs."""

from .async_tracker import AsyncCorrelationTracker, PendingAsyncCall
from .context import ProfilerContext
from .frames import FrameLifecycleController, RecordingState
from .identity import IdentityRegistry
from .interceptor import MethodInterceptor
from .profiler import DeviceProfiler
from .recorder import CallRecorder
from .records import AsyncResolutionRecord, Frame, MethodRecord
from .report import FrameSummary, ReportQuery, TimingStats, TraceLine
from .scheduler import FrameScheduler
from .serializer import ArgumentSerializer
from .walker import ASYNC_METHODS, SKIP_METHODS, SLOW_METHODS, ObjectGraphWalker

__all__ = [
    'ASYNC_METHODS',
    'SKIP_METHODS',
    'SLOW_METHODS',
    'ArgumentSerializer',
    'AsyncCorrelationTracker',
    'AsyncResolutionRecord',
    'CallRecorder',
    'DeviceProfiler',
    'Frame',
    'FrameLifecycleController',
    'FrameScheduler',
    'FrameSummary',
    'IdentityRegistry',
    'MethodInterceptor',
    'MethodRecord',
    'ObjectGraphWalker',
    'PendingAsyncCall',
    'ProfilerContext',
    'RecordingState',
    'ReportQuery',
    'TimingStats',
    'TraceLine',
]
