"""Unit tests for ArgumentSerializer rendering rules."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
import pytest

from device_profiler.core.instrumentation.identity import IdentityRegistry
from device_profiler.core.instrumentation.serializer import ArgumentSerializer


class Color(Enum):
    RED = 1


class Buffer:
    def __init__(self, size: int):
        self.size = size


class Collection:
    """Array-like device object."""

    def __init__(self, items):
        self._items = list(items)

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(self._items)


class Descriptor:
    def __init__(self):
        self.size = 4
        self._private = "hidden"


class Broken:
    __slots__ = ()

    def __repr__(self):
        raise RuntimeError("no repr")


@dataclass
class BufferDescriptor:
    size: int
    usage: int = 0
    label: Optional[str] = None


def helper():
    pass


@pytest.fixture
def registry() -> IdentityRegistry:
    return IdentityRegistry()


@pytest.fixture
def serializer(registry: IdentityRegistry) -> ArgumentSerializer:
    return ArgumentSerializer(registry)


class TestScalars:

    def test_none_and_bools(self, serializer):
        assert serializer.serialize(None) == "None"
        assert serializer.serialize(True) == "True"
        assert serializer.serialize(False) == "False"

    def test_strings_use_backticks(self, serializer):
        assert serializer.serialize("rgba8unorm") == "`rgba8unorm`"
        assert serializer.serialize("") == "``"

    def test_numbers(self, serializer):
        assert serializer.serialize(3) == "3"
        assert serializer.serialize(2.5) == "2.5"

    def test_enum_member(self, serializer):
        assert serializer.serialize(Color.RED) == "Color.RED"

    def test_callables_render_qualified_name(self, serializer):
        assert serializer.serialize(helper) == "helper"
        assert serializer.serialize(Buffer) == "Buffer"


class TestArrays:

    def test_short_list_rendered_element_wise(self, serializer):
        assert serializer.serialize(list(range(10))) == "[0, 1, 2, 3, 4, 5, 6, 7, 8, 9]"

    def test_long_list_summarized(self, serializer):
        assert serializer.serialize(list(range(11))) == "list(11)"

    def test_bytes_summarized_by_type_and_length(self, serializer):
        assert serializer.serialize(bytes(16)) == "bytes(16)"

    def test_numpy_array_summarized(self, serializer):
        assert serializer.serialize(np.zeros(64, dtype=np.float32)) == "ndarray(64)"

    def test_threshold_is_configurable(self, registry):
        serializer = ArgumentSerializer(registry, array_summary_threshold=2)

        assert serializer.serialize([1, 2]) == "[1, 2]"
        assert serializer.serialize([1, 2, 3]) == "list(3)"

    def test_empty_tuple(self, serializer):
        assert serializer.serialize(()) == "[]"


class TestObjects:

    def test_mapping(self, serializer):
        assert serializer.serialize({"size": 4, "label": "x"}) == '{ "size": 4, "label": `x` }'

    def test_empty_mapping(self, serializer):
        assert serializer.serialize({}) == "{}"

    def test_public_attributes_only(self, serializer):
        assert serializer.serialize(Descriptor()) == '{ "size": 4 }'

    def test_dataclass_descriptor(self, serializer):
        rendered = serializer.serialize(BufferDescriptor(size=16))

        assert rendered == '{ "size": 16, "usage": 0, "label": None }'

    def test_identified_object_is_back_reference(self, serializer, registry):
        buffer = Buffer(16)
        registry.identify(buffer)

        assert serializer.serialize(buffer) == "Buffer@1"
        assert serializer.serialize({"buffer": buffer}) == '{ "buffer": Buffer@1 }'

    def test_identity_wins_over_array_summary(self, serializer, registry):
        collection = Collection(range(20))
        registry.identify(collection)

        assert serializer.serialize(collection) == "Collection@1"

    def test_identified_object_deep_inside_structure(self, serializer, registry):
        buffer = Buffer(4)
        registry.identify(buffer)
        nested = {"entries": [{"resource": {"buffer": buffer}}]}

        rendered = serializer.serialize(nested)

        assert rendered == '{ "entries": [{ "resource": { "buffer": Buffer@1 } }] }'

    def test_render_keys_drops_braces(self, serializer):
        assert serializer.serialize({"a": 1, "b": "x"}, render_keys=True) == '"a": 1, "b": `x`'


class TestGuards:

    def test_circular_structure(self, serializer):
        looped = {}
        looped["self"] = looped

        assert serializer.serialize(looped) == '{ "self": <circular dict> }'

    def test_shared_but_acyclic_values_are_rendered_twice(self, serializer):
        shared = [1]

        assert serializer.serialize([shared, shared]) == "[[1], [1]]"

    def test_depth_limit(self, registry):
        serializer = ArgumentSerializer(registry, max_depth=2)

        assert serializer.serialize([[[1]]]) == "[[…]]"

    def test_failing_repr_never_raises(self, serializer):
        assert serializer.serialize(Broken()) == "<unrepresentable Broken>"


class TestSerializeCall:

    def test_positional_and_keyword_arguments(self, serializer):
        assert serializer.serialize_call((1, "x"), {"flag": True}) == "1, `x`, flag=True"

    def test_no_arguments(self, serializer):
        assert serializer.serialize_call(()) == ""
