"""Recorded call and frame types."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class MethodRecord:
    """One intercepted call.

    Synchronous calls carry ``duration_ms``; asynchronous calls are recorded
    at call time with ``async_token`` set and no duration, the duration
    arriving later in the matching :class:`AsyncResolutionRecord`.
    """
    type_name: str
    object_id: int
    method_name: str
    arguments: str
    duration_ms: Optional[float] = None
    async_token: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_async(self) -> bool:
        return self.async_token is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = "async_call" if self.is_async else "call"
        return data


@dataclass(frozen=True)
class AsyncResolutionRecord:
    """Completion of an asynchronous call, attributed to its token."""
    async_token: int
    duration_ms: float
    result: str
    method_name: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = "async_resolution"
        return data


CommandRecord = Union[MethodRecord, AsyncResolutionRecord]


@dataclass
class Frame:
    """One execution epoch: timing plus the ordered commands issued inside it."""
    index: int
    time_since_last_frame_ms: float
    duration_ms: float = 0.0
    commands: List[CommandRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "time_since_last_frame_ms": self.time_since_last_frame_ms,
            "duration_ms": self.duration_ms,
            "commands": [command.to_dict() for command in self.commands],
        }


def describe_error(exc: BaseException) -> str:
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


__all__ = [
    "AsyncResolutionRecord",
    "CommandRecord",
    "Frame",
    "MethodRecord",
    "describe_error",
]
