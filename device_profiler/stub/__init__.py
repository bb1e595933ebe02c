"""Simulated GPU-style device API used by the demo session and the tests."""

from .device_api import (
    GPU,
    Adapter,
    Buffer,
    BufferDescriptor,
    Canvas,
    CanvasContext,
    CommandBuffer,
    CommandEncoder,
    ComputePassEncoder,
    ComputePipeline,
    Device,
    Queue,
    RenderPassEncoder,
    RenderPipeline,
    ShaderModule,
    Texture,
    TextureView,
)

__all__ = [
    'GPU',
    'Adapter',
    'Buffer',
    'BufferDescriptor',
    'Canvas',
    'CanvasContext',
    'CommandBuffer',
    'CommandEncoder',
    'ComputePassEncoder',
    'ComputePipeline',
    'Device',
    'Queue',
    'RenderPassEncoder',
    'RenderPipeline',
    'ShaderModule',
    'Texture',
    'TextureView',
]
