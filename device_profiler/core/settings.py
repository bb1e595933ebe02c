"""Typed profiler settings resolved from the key=value config file."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .config_manager import ConfigManager, get_config_manager
from .paths import CONFIG_PATH


DEFAULT_MAX_FRAMES_TO_RECORD = 1000
DEFAULT_SLOW_FRAME_THRESHOLD_MS = 50.0
DEFAULT_ARRAY_SUMMARY_THRESHOLD = 10
DEFAULT_MAX_SERIALIZE_DEPTH = 8
DEFAULT_API_PORT = 8765


@dataclass(frozen=True)
class ProfilerSettings:
    max_frames_to_record: int = DEFAULT_MAX_FRAMES_TO_RECORD
    record_on_start: bool = False
    auto_stop_at_capacity: bool = False
    slow_frame_threshold_ms: float = DEFAULT_SLOW_FRAME_THRESHOLD_MS
    array_summary_threshold: int = DEFAULT_ARRAY_SUMMARY_THRESHOLD
    max_serialize_depth: int = DEFAULT_MAX_SERIALIZE_DEPTH
    log_level: str = "info"
    console_output: bool = True
    api_host: str = "127.0.0.1"
    api_port: int = DEFAULT_API_PORT

    def __post_init__(self) -> None:
        if self.max_frames_to_record <= 0:
            raise ValueError("max_frames_to_record must be positive")
        if self.array_summary_threshold < 0:
            raise ValueError("array_summary_threshold must not be negative")
        if self.max_serialize_depth <= 0:
            raise ValueError("max_serialize_depth must be positive")

    @classmethod
    def from_config(
        cls,
        config: Dict[str, str],
        manager: Optional[ConfigManager] = None,
    ) -> "ProfilerSettings":
        cm = manager or get_config_manager()
        return cls(
            max_frames_to_record=cm.get_int(config, "max_frames_to_record", DEFAULT_MAX_FRAMES_TO_RECORD),
            record_on_start=cm.get_bool(config, "record_on_start", False),
            auto_stop_at_capacity=cm.get_bool(config, "auto_stop_at_capacity", False),
            slow_frame_threshold_ms=cm.get_float(config, "slow_frame_threshold_ms", DEFAULT_SLOW_FRAME_THRESHOLD_MS),
            array_summary_threshold=cm.get_int(config, "array_summary_threshold", DEFAULT_ARRAY_SUMMARY_THRESHOLD),
            max_serialize_depth=cm.get_int(config, "max_serialize_depth", DEFAULT_MAX_SERIALIZE_DEPTH),
            log_level=cm.get_str(config, "log_level", "info"),
            console_output=cm.get_bool(config, "console_output", True),
            api_host=cm.get_str(config, "api_host", "127.0.0.1"),
            api_port=cm.get_int(config, "api_port", DEFAULT_API_PORT),
        )

    def with_overrides(self, **overrides: Any) -> "ProfilerSettings":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_config(self) -> Dict[str, Any]:
        return asdict(self)


def load_settings(config_path: Path = CONFIG_PATH, manager: Optional[ConfigManager] = None) -> ProfilerSettings:
    cm = manager or get_config_manager()
    return ProfilerSettings.from_config(cm.read_config(config_path), cm)


async def load_settings_async(
    config_path: Path = CONFIG_PATH,
    manager: Optional[ConfigManager] = None,
) -> ProfilerSettings:
    cm = manager or get_config_manager()
    return ProfilerSettings.from_config(await cm.read_config_async(config_path), cm)


async def save_settings_async(
    settings: ProfilerSettings,
    config_path: Path = CONFIG_PATH,
    manager: Optional[ConfigManager] = None,
) -> bool:
    """Persist ``settings`` so they become the defaults of the next run.

    Read-only installs store the values in the per-user override file.
    """
    cm = manager or get_config_manager()
    return await cm.write_config_async(config_path, settings.to_config())


__all__ = ["ProfilerSettings", "load_settings", "load_settings_async", "save_settings_async"]
