"""REST query and control surface for a running profiler."""

from .controller import ProfilerAPIController
from .server import APIServer

__all__ = ["APIServer", "ProfilerAPIController"]
