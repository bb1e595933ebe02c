"""
API route modules.

- system: health check
- profiler: recording control, frames, traces, async correlations, stats
"""

from .profiler import setup_profiler_routes
from .system import setup_system_routes


def setup_all_routes(app, controller):
    """Register all API routes with the application."""
    setup_system_routes(app, controller)
    setup_profiler_routes(app, controller)


__all__ = ["setup_all_routes"]
