"""Unit tests for ObjectGraphWalker."""

import pytest

from device_profiler.core.instrumentation import DeviceProfiler
from device_profiler.core.instrumentation.walker import is_instrumentable


class Queue:
    def submit(self, buffers):
        return len(buffers)


class Features:
    """Only iteration helpers, never instrumented."""

    def has(self, name):
        return False

    def keys(self):
        return iter(())


class Limits:
    def __init__(self):
        self.max_bind_groups = 4


class Device:
    def __init__(self):
        self.queue = Queue()
        self.features = Features()
        self.limits = Limits()
        self.label = "device"
        self.options = {"debug": True}
        self._internal = Queue()

    def create_buffer(self, size):
        return size

    def destroy(self):
        pass

    async def create_render_pipeline_async(self, descriptor):
        return descriptor

    async def compile(self):
        return None


class Node:
    def __init__(self):
        self.peer = None

    def ping(self):
        return "pong"


class Exploding:
    @property
    def status(self):
        raise RuntimeError("not available")

    def reset(self):
        return True


class TestWrap:

    def test_root_gets_first_identity(self, profiler):
        device = Device()

        assert profiler.wrap(device) is True
        assert profiler.identity_of(device) == 1

    def test_nested_object_with_methods_is_wrapped(self, profiler):
        device = Device()
        profiler.wrap(device)

        assert profiler.identity_of(device.queue) == 2
        assert "submit" in vars(device.queue)

    def test_objects_without_methods_are_not_recursed(self, profiler):
        device = Device()
        profiler.wrap(device)

        assert profiler.identity_of(device.limits) is None
        assert profiler.identity_of(device.features) is None
        assert "has" not in vars(device.features)

    def test_private_attributes_ignored(self, profiler):
        device = Device()
        profiler.wrap(device)

        assert profiler.identity_of(device._internal) is None

    def test_skip_list_methods_untouched(self, profiler):
        features = Features()
        has_before, keys_before = features.has, features.keys

        profiler.wrap(features)

        assert features.has == has_before
        assert features.keys == keys_before
        assert "has" not in vars(features)
        assert "keys" not in vars(features)

    def test_cycles_terminate(self, profiler):
        a, b = Node(), Node()
        a.peer, b.peer = b, a

        profiler.wrap(a)

        assert profiler.identity_of(a) == 1
        assert profiler.identity_of(b) == 2

    def test_wrap_twice_is_noop(self, profiler):
        device = Device()
        profiler.wrap(device)
        count = profiler.context.registry.count

        assert profiler.wrap(device) is False
        assert profiler.context.registry.count == count

    def test_failing_member_access_skipped(self, profiler):
        obj = Exploding()

        assert profiler.wrap(obj) is True
        assert "reset" in vars(obj)

    @pytest.mark.parametrize("value", [None, 5, 2.5, "text", b"raw", [1, 2], {"a": 1}, (1,), len, Device])
    def test_non_objects_are_ignored(self, profiler, value):
        assert profiler.wrap(value) is False
        assert profiler.context.registry.count == 0


class TestClassification:

    def test_async_by_name(self, profiler):
        device = Device()
        walker = profiler.context.walker

        assert walker.is_async_method("create_render_pipeline_async", device.create_render_pipeline_async)

    def test_async_by_definition(self, profiler):
        device = Device()
        walker = profiler.context.walker

        assert walker.is_async_method("compile", device.compile)
        assert not walker.is_async_method("destroy", device.destroy)

    def test_has_methods_ignores_skip_list(self, profiler):
        walker = profiler.context.walker

        assert walker.has_methods(Queue()) is True
        assert walker.has_methods(Features()) is False
        assert walker.has_methods(Limits()) is False

    def test_custom_skip_list(self, clock):
        profiler = DeviceProfiler(clock=clock, skip_methods={"destroy"})
        device = Device()

        profiler.wrap(device)

        assert "destroy" not in vars(device)
        assert "create_buffer" in vars(device)

    def test_device_method_named_get_is_traced(self, profiler):
        class Registry:
            def get(self, key):
                return key

        registry = Registry()
        profiler.wrap(registry)
        profiler.start_recording()

        with profiler.frame():
            assert registry.get("slot") == "slot"

        assert "get" in vars(registry)
        assert profiler.report.frame_at(0).commands[0].method_name == "get"


class TestIsInstrumentable:

    def test_user_instances(self):
        assert is_instrumentable(Device())

    def test_builtins_and_primitives(self):
        assert not is_instrumentable(object())
        assert not is_instrumentable([])
        assert not is_instrumentable(3)
        assert not is_instrumentable(Device)
