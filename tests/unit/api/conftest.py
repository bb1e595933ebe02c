"""Pytest fixtures for API unit tests.

Provides a profiler populated with a few recorded frames and helpers for
building aiohttp test applications around it, so routes can be exercised
without starting a real server.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, TypeVar

import pytest
from aiohttp import web

from device_profiler.core.api.controller import ProfilerAPIController
from device_profiler.core.api.server import create_app
from device_profiler.core.instrumentation import DeviceProfiler


T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class Encoder:
    def begin_render_pass(self, descriptor):
        return RenderPass()


class RenderPass:
    def draw(self, vertex_count):
        pass

    def end_pass(self):
        pass


class Device:
    def create_buffer(self, size):
        return size

    def create_command_encoder(self):
        return Encoder()


def record_frames(profiler: DeviceProfiler, clock, count: int) -> Device:
    """Record ``count`` frames of a tiny render loop."""
    device = Device()
    profiler.wrap(device)
    profiler.start_recording()
    for index in range(count):
        with profiler.frame():
            device.create_buffer(16 * (index + 1))
            render_pass = device.create_command_encoder().begin_render_pass({"label": f"pass-{index}"})
            render_pass.draw(3)
            render_pass.end_pass()
            clock.advance(2.0)
        clock.advance(14.0)
    return device


def create_test_app(controller: ProfilerAPIController) -> web.Application:
    """Create an aiohttp app with all routes registered for testing."""
    # Peers of the aiohttp test server are local, keep the production stack.
    return create_app(controller, localhost_only=True)


@pytest.fixture
def controller(profiler: DeviceProfiler) -> ProfilerAPIController:
    return ProfilerAPIController(profiler, version="1.2.3")


@pytest.fixture
def recorded_controller(profiler: DeviceProfiler, clock) -> ProfilerAPIController:
    record_frames(profiler, clock, 3)
    return ProfilerAPIController(profiler, version="1.2.3")
