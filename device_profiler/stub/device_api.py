"""
Stub device API.

A small, dependency-free imitation of a GPU handle graph: an entry object
hands out adapters, adapters hand out devices, devices create resources and
command encoders, encoders open render/compute passes. Some creation calls
are coroutines with a configurable latency. Nothing is rendered; the point
is to give the profiler a realistic object graph to instrument.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

_labels = itertools.count(1)


def _label(prefix: str, label: Optional[str]) -> str:
    return label or f"{prefix}-{next(_labels)}"


@dataclass
class BufferDescriptor:
    size: int
    usage: int = 0
    label: Optional[str] = None
    mapped_at_creation: bool = False


@dataclass
class Limits:
    max_bind_groups: int = 4
    max_buffer_size: int = 256 * 1024 * 1024
    max_texture_dimension_2d: int = 8192


class SupportedFeatures:
    """Read-only feature set; only exposes iteration helpers."""

    def __init__(self, names: Sequence[str]):
        self._names = frozenset(names)

    def has(self, name: str) -> bool:
        return name in self._names

    def keys(self) -> Iterator[str]:
        return iter(sorted(self._names))

    def values(self) -> Iterator[str]:
        return self.keys()


class ShaderModule:
    def __init__(self, code: str, label: Optional[str] = None):
        self.code = code
        self.label = _label("shader", label)

    def get_compilation_info(self) -> Dict[str, List[str]]:
        return {"messages": []}


class RenderPipeline:
    def __init__(self, descriptor: Dict[str, Any]):
        self.label = _label("render-pipeline", descriptor.get("label"))

    def get_bind_group_layout(self, index: int) -> "BindGroupLayout":
        return BindGroupLayout(index)


class ComputePipeline:
    def __init__(self, descriptor: Dict[str, Any]):
        self.label = _label("compute-pipeline", descriptor.get("label"))

    def get_bind_group_layout(self, index: int) -> "BindGroupLayout":
        return BindGroupLayout(index)


class BindGroupLayout:
    def __init__(self, index: int):
        self.index = index


class BindGroup:
    def __init__(self, descriptor: Dict[str, Any]):
        self.label = _label("bind-group", descriptor.get("label"))
        self.entries = list(descriptor.get("entries", ()))


class Buffer:
    def __init__(self, descriptor: BufferDescriptor, map_latency: float = 0.0):
        self.size = descriptor.size
        self.usage = descriptor.usage
        self.label = _label("buffer", descriptor.label)
        self._data = bytearray(descriptor.size)
        self._mapped = descriptor.mapped_at_creation
        self._destroyed = False
        self._map_latency = map_latency

    async def map_async(self, mode: int = 1) -> None:
        if self._destroyed:
            raise RuntimeError(f"buffer {self.label} is destroyed")
        await asyncio.sleep(self._map_latency)
        self._mapped = True

    def get_mapped_range(self) -> memoryview:
        if not self._mapped:
            raise RuntimeError(f"buffer {self.label} is not mapped")
        return memoryview(self._data)

    def unmap(self) -> None:
        self._mapped = False

    def destroy(self) -> None:
        self._destroyed = True


class TextureView:
    def __init__(self, texture: "Texture"):
        self.texture_label = texture.label


class Texture:
    def __init__(self, width: int, height: int, texture_format: str, label: Optional[str] = None):
        self.width = width
        self.height = height
        self.format = texture_format
        self.label = _label("texture", label)

    def create_view(self) -> TextureView:
        return TextureView(self)

    def destroy(self) -> None:
        pass


class CommandBuffer:
    def __init__(self, command_count: int):
        self.command_count = command_count


class RenderPassEncoder:
    def __init__(self, encoder: "CommandEncoder"):
        self._encoder = encoder

    def set_pipeline(self, pipeline: RenderPipeline) -> None:
        self._encoder._count += 1

    def set_bind_group(self, index: int, bind_group: BindGroup) -> None:
        self._encoder._count += 1

    def set_vertex_buffer(self, slot: int, buffer: Buffer) -> None:
        self._encoder._count += 1

    def draw(self, vertex_count: int, instance_count: int = 1) -> None:
        self._encoder._count += 1

    def end_pass(self) -> None:
        self._encoder._count += 1


class ComputePassEncoder:
    def __init__(self, encoder: "CommandEncoder"):
        self._encoder = encoder

    def set_pipeline(self, pipeline: ComputePipeline) -> None:
        self._encoder._count += 1

    def set_bind_group(self, index: int, bind_group: BindGroup) -> None:
        self._encoder._count += 1

    def dispatch(self, x: int, y: int = 1, z: int = 1) -> None:
        self._encoder._count += 1

    def end_pass(self) -> None:
        self._encoder._count += 1


class CommandEncoder:
    def __init__(self, label: Optional[str] = None):
        self.label = _label("encoder", label)
        self._count = 0
        self._finished = False

    def begin_render_pass(self, descriptor: Dict[str, Any]) -> RenderPassEncoder:
        self._count += 1
        return RenderPassEncoder(self)

    def begin_compute_pass(self, descriptor: Optional[Dict[str, Any]] = None) -> ComputePassEncoder:
        self._count += 1
        return ComputePassEncoder(self)

    def copy_buffer_to_buffer(self, source: Buffer, source_offset: int, destination: Buffer,
                              destination_offset: int, size: int) -> None:
        self._count += 1

    def finish(self) -> CommandBuffer:
        if self._finished:
            raise RuntimeError(f"encoder {self.label} already finished")
        self._finished = True
        return CommandBuffer(self._count)


class Queue:
    def __init__(self, work_latency: float = 0.0):
        self.submitted = 0
        self._work_latency = work_latency

    def submit(self, command_buffers: Sequence[CommandBuffer]) -> None:
        self.submitted += len(command_buffers)

    def write_buffer(self, buffer: Buffer, offset: int, data: Any) -> None:
        if offset + len(data) > buffer.size:
            raise ValueError(f"write of {len(data)} bytes at {offset} overflows {buffer.label}")

    async def on_submitted_work_done(self) -> int:
        await asyncio.sleep(self._work_latency)
        return self.submitted


class Device:
    def __init__(self, adapter_name: str, limits: Limits, latency: float = 0.0):
        self.adapter_name = adapter_name
        self.limits = limits
        self.queue = Queue(work_latency=latency)
        self.lost = False
        self._latency = latency
        self._error_scopes: List[str] = []

    def create_buffer(self, descriptor: BufferDescriptor) -> Buffer:
        if descriptor.size <= 0 or descriptor.size > self.limits.max_buffer_size:
            raise ValueError(f"invalid buffer size {descriptor.size}")
        return Buffer(descriptor, map_latency=self._latency)

    def create_texture(self, width: int, height: int, texture_format: str = "rgba8unorm") -> Texture:
        return Texture(width, height, texture_format)

    def create_shader_module(self, descriptor: Dict[str, Any]) -> ShaderModule:
        return ShaderModule(descriptor.get("code", ""), descriptor.get("label"))

    def create_render_pipeline(self, descriptor: Dict[str, Any]) -> RenderPipeline:
        return RenderPipeline(descriptor)

    async def create_render_pipeline_async(self, descriptor: Dict[str, Any]) -> RenderPipeline:
        await asyncio.sleep(self._latency)
        return RenderPipeline(descriptor)

    def create_compute_pipeline(self, descriptor: Dict[str, Any]) -> ComputePipeline:
        return ComputePipeline(descriptor)

    async def create_compute_pipeline_async(self, descriptor: Dict[str, Any]) -> ComputePipeline:
        await asyncio.sleep(self._latency)
        return ComputePipeline(descriptor)

    def create_bind_group(self, descriptor: Dict[str, Any]) -> BindGroup:
        return BindGroup(descriptor)

    def create_command_encoder(self, descriptor: Optional[Dict[str, Any]] = None) -> CommandEncoder:
        return CommandEncoder((descriptor or {}).get("label"))

    def push_error_scope(self, kind: str) -> None:
        self._error_scopes.append(kind)

    def pop_error_scope(self) -> Optional[str]:
        if not self._error_scopes:
            raise RuntimeError("no error scope to pop")
        self._error_scopes.pop()
        return None

    def destroy(self) -> None:
        self.lost = True


class Adapter:
    def __init__(self, name: str = "stub-adapter", latency: float = 0.0):
        self.name = name
        self.features = SupportedFeatures(["timestamp-query", "texture-compression-bc"])
        self.limits = Limits()
        self._latency = latency

    async def request_device(self, descriptor: Optional[Dict[str, Any]] = None) -> Device:
        await asyncio.sleep(self._latency)
        return Device(self.name, self.limits, latency=self._latency)


class GPU:
    """Entry point of the stub API."""

    def __init__(self, latency: float = 0.0, available: bool = True):
        self._latency = latency
        self._available = available

    async def request_adapter(self, options: Optional[Dict[str, Any]] = None) -> Optional[Adapter]:
        await asyncio.sleep(self._latency)
        if not self._available:
            return None
        return Adapter(latency=self._latency)

    def get_preferred_format(self) -> str:
        return "bgra8unorm"


class CanvasContext:
    def __init__(self, canvas: "Canvas"):
        self._canvas = canvas
        self.device: Optional[Device] = None
        self.format = "bgra8unorm"

    def configure(self, configuration: Dict[str, Any]) -> None:
        self.device = configuration.get("device")
        self.format = configuration.get("format", self.format)

    def get_current_texture(self) -> Texture:
        return Texture(self._canvas.width, self._canvas.height, self.format)


@dataclass
class Canvas:
    width: int = 640
    height: int = 480
    contexts: Dict[str, CanvasContext] = field(default_factory=dict)

    def get_context(self, kind: str) -> Optional[CanvasContext]:
        if kind != "gpu":
            return None
        if kind not in self.contexts:
            self.contexts[kind] = CanvasContext(self)
        return self.contexts[kind]


__all__ = [
    "GPU",
    "Adapter",
    "BindGroup",
    "BindGroupLayout",
    "Buffer",
    "BufferDescriptor",
    "Canvas",
    "CanvasContext",
    "CommandBuffer",
    "CommandEncoder",
    "ComputePassEncoder",
    "ComputePipeline",
    "Device",
    "Limits",
    "Queue",
    "RenderPassEncoder",
    "RenderPipeline",
    "ShaderModule",
    "SupportedFeatures",
    "Texture",
    "TextureView",
]
