"""Application entry points for the profiler demo session."""

from .session import DemoSession

__all__ = ["DemoSession"]
