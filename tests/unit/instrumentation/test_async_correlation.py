"""Unit tests for asynchronous interception and correlation."""

import asyncio
import inspect

import pytest

from device_profiler.core.instrumentation import AsyncResolutionRecord, MethodRecord


class Device:
    def destroy(self):
        pass


class Loader:
    """Async-bearing object; some methods are async by name, some by definition."""

    def __init__(self, gate=None):
        self._gate = gate

    async def request_device(self, label):
        await asyncio.sleep(0)
        return Device()

    async def fetch(self):
        if self._gate is not None:
            await self._gate.wait()
        return 42

    async def broken(self):
        await asyncio.sleep(0)
        raise RuntimeError("device lost")

    def map_async(self, mode):
        return mode * 2

    def request_adapter(self):
        raise ValueError("no adapter")


def _commands(profiler, index):
    return profiler.report.frame_at(index).commands


class TestAsyncTransparency:

    @pytest.mark.asyncio
    async def test_value_unchanged_when_idle(self, profiler):
        loader = Loader()
        profiler.wrap(loader)

        assert await loader.fetch() == 42
        assert profiler.tracker.pending_count == 0
        assert profiler.tracker.resolutions() == []

    @pytest.mark.asyncio
    async def test_returns_task_on_running_loop(self, profiler):
        loader = Loader()
        profiler.wrap(loader)

        task = loader.fetch()

        assert isinstance(task, asyncio.Task)
        assert await task == 42

    def test_returns_coroutine_without_loop(self, profiler):
        loader = Loader()
        profiler.wrap(loader)

        pending = loader.fetch()

        assert inspect.iscoroutine(pending)
        assert asyncio.run(pending) == 42

    @pytest.mark.asyncio
    async def test_rejection_propagates(self, profiler):
        loader = Loader()
        profiler.wrap(loader)

        with pytest.raises(RuntimeError, match="device lost"):
            await loader.broken()

    def test_synchronous_failure_propagates(self, profiler):
        loader = Loader()
        profiler.wrap(loader)

        with pytest.raises(ValueError, match="no adapter"):
            loader.request_adapter()


class TestAsyncCorrelation:

    @pytest.mark.asyncio
    async def test_resolution_lands_in_later_frame(self, profiler, clock):
        gate = asyncio.Event()
        loader = Loader(gate)
        profiler.wrap(loader)
        profiler.start_recording()

        with profiler.frame():
            task = loader.fetch()
        with profiler.frame():
            pass
        with profiler.frame():
            clock.advance(30.0)
            gate.set()
            assert await task == 42

        start = _commands(profiler, 0)[0]
        assert isinstance(start, MethodRecord)
        assert start.method_name == "fetch"
        assert start.async_token == 1
        assert start.duration_ms is None

        assert _commands(profiler, 1) == []

        resolution = _commands(profiler, 2)[0]
        assert isinstance(resolution, AsyncResolutionRecord)
        assert resolution.async_token == 1
        assert resolution.result == "42"
        assert resolution.duration_ms == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_pending_until_resolved(self, profiler):
        gate = asyncio.Event()
        loader = Loader(gate)
        profiler.wrap(loader)
        profiler.start_recording()

        with profiler.frame():
            task = loader.fetch()

        assert profiler.tracker.pending_count == 1
        pending = profiler.tracker.pending()[0]
        assert pending.method_name == "fetch"
        assert pending.frame_index == 0

        gate.set()
        await task

        assert profiler.tracker.pending_count == 0
        assert profiler.tracker.resolution_for(pending.token).result == "42"

    @pytest.mark.asyncio
    async def test_new_object_result_wrapped_before_rendering(self, profiler):
        loader = Loader()
        profiler.wrap(loader)
        profiler.start_recording()

        with profiler.frame():
            device = await loader.request_device("main")

        device_id = profiler.identity_of(device)
        assert device_id is not None
        assert "destroy" in vars(device)

        start, resolution = _commands(profiler, 0)
        assert start.arguments == "`main`"
        assert resolution.result == f"Device@{device_id}"

    @pytest.mark.asyncio
    async def test_rejection_recorded(self, profiler):
        loader = Loader()
        profiler.wrap(loader)
        profiler.start_recording()

        with profiler.frame():
            with pytest.raises(RuntimeError):
                await loader.broken()

        resolution = _commands(profiler, 0)[1]
        assert resolution.error == "RuntimeError: device lost"
        assert profiler.tracker.pending_count == 0

    def test_non_awaitable_result_resolves_immediately(self, profiler):
        loader = Loader()
        profiler.wrap(loader)
        profiler.start_recording()

        with profiler.frame():
            assert loader.map_async(3) == 6

        start, resolution = _commands(profiler, 0)
        assert start.async_token == resolution.async_token
        assert resolution.result == "6"

    def test_synchronous_failure_recorded(self, profiler):
        loader = Loader()
        profiler.wrap(loader)
        profiler.start_recording()

        with profiler.frame():
            with pytest.raises(ValueError):
                loader.request_adapter()

        record = _commands(profiler, 0)[0]
        assert record.error == "ValueError: no adapter"
        assert profiler.tracker.pending_count == 0

    @pytest.mark.asyncio
    async def test_cancellation_leaves_entry_pending(self, profiler):
        gate = asyncio.Event()
        loader = Loader(gate)
        profiler.wrap(loader)
        profiler.start_recording()

        with profiler.frame():
            task = loader.fetch()
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert profiler.tracker.pending_count == 1

    @pytest.mark.asyncio
    async def test_calls_while_idle_are_not_tracked(self, profiler):
        loader = Loader()
        profiler.wrap(loader)

        await loader.fetch()

        assert profiler.tracker.pending() == []
        assert profiler.tracker.resolutions() == []

    @pytest.mark.asyncio
    async def test_tokens_independent_of_identities(self, profiler):
        loaders = [Loader() for _ in range(3)]
        for loader in loaders:
            profiler.wrap(loader)
        profiler.start_recording()

        with profiler.frame():
            await loaders[2].fetch()
            await loaders[0].fetch()

        tokens = [record.async_token for record in _commands(profiler, 0) if isinstance(record, MethodRecord)]
        assert tokens == [1, 2]

    @pytest.mark.asyncio
    async def test_restart_keeps_in_flight_calls(self, profiler):
        gate = asyncio.Event()
        slow, fast = Loader(gate), Loader()
        profiler.wrap(slow)
        profiler.wrap(fast)
        profiler.start_recording()

        with profiler.frame():
            task = slow.fetch()
            await fast.fetch()

        assert len(profiler.tracker.resolutions()) == 1

        profiler.start_recording()

        assert profiler.tracker.resolutions() == []
        assert profiler.tracker.pending_count == 1

        with profiler.frame():
            gate.set()
            await task

        resolution = _commands(profiler, 0)[0]
        assert resolution.async_token == 1
