"""Shared logging helpers for the device profiler."""

from __future__ import annotations

import logging
from typing import Optional, Union

PROFILER_LOGGER_NAMESPACE = "device_profiler"
DEFAULT_COMPONENT = "Profiler"


def _normalize_logger_name(name: Optional[str]) -> str:
    if not name:
        return PROFILER_LOGGER_NAMESPACE
    if name.startswith(PROFILER_LOGGER_NAMESPACE):
        return name
    return f"{PROFILER_LOGGER_NAMESPACE}.{name}"


def _derive_component(name: str) -> str:
    if not name:
        return DEFAULT_COMPONENT
    if name.startswith(PROFILER_LOGGER_NAMESPACE):
        suffix = name[len(PROFILER_LOGGER_NAMESPACE):].lstrip(".")
        return suffix or DEFAULT_COMPONENT
    return name


class StructuredLogger:
    """Thin wrapper that tags every message with its ``[Component]``."""

    __slots__ = ("_logger", "_component")

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        object.__setattr__(self, "_logger", logger)
        resolved = component or _derive_component(logger.name)
        object.__setattr__(self, "_component", resolved or DEFAULT_COMPONENT)

    def __getattr__(self, item):
        return getattr(self._logger, item)

    def __setattr__(self, key, value):
        if key in self.__slots__:
            object.__setattr__(self, key, value)
        else:
            setattr(self._logger, key, value)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"StructuredLogger({self._logger!r}, component={self._component!r})"

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def component(self) -> str:
        return self._component

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    # ------------------------------------------------------------------
    # Formatting

    def _compose(self, message: object, args: tuple) -> str:
        text = str(message)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                safe_args = " ".join(str(arg) for arg in args)
                text = f"{text} | args={safe_args}"
        prefix = self._component or DEFAULT_COMPONENT
        if not text.startswith(f"[{prefix}]"):
            text = f"[{prefix}] {text}"
        return text

    def _emit(self, method: str, message: object, *args, **kwargs) -> None:
        logger = self._logger
        level = getattr(logging, method.upper())
        if not logger.isEnabledFor(level):
            return
        getattr(logger, method)(self._compose(message, args), **kwargs)

    # ------------------------------------------------------------------
    # Logging API surface

    def log(self, level: int, message: object, *args, **kwargs) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self._compose(message, args), **kwargs)

    def debug(self, message: object, *args, **kwargs) -> None:
        self._emit("debug", message, *args, **kwargs)

    def info(self, message: object, *args, **kwargs) -> None:
        self._emit("info", message, *args, **kwargs)

    def warning(self, message: object, *args, **kwargs) -> None:
        self._emit("warning", message, *args, **kwargs)

    def error(self, message: object, *args, **kwargs) -> None:
        self._emit("error", message, *args, **kwargs)

    def exception(self, message: object, *args, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self._emit("error", message, *args, **kwargs)

    def critical(self, message: object, *args, **kwargs) -> None:
        self._emit("critical", message, *args, **kwargs)

    def getChild(self, suffix: str) -> "StructuredLogger":
        child = self._logger.getChild(suffix)
        return StructuredLogger(child, component=f"{self._component}.{suffix}")


LoggerLike = Union[StructuredLogger, logging.Logger, logging.LoggerAdapter, None]


def ensure_structured_logger(
    logger: LoggerLike,
    *,
    component: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> StructuredLogger:
    """Return a StructuredLogger wrapping ``logger`` (or a new profiler logger)."""

    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.LoggerAdapter):
        return StructuredLogger(logger.logger, component=component or _derive_component(logger.logger.name))
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger, component=component)
    return get_module_logger(fallback_name)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    """Return a structured logger scoped to the device_profiler namespace."""
    return StructuredLogger(logging.getLogger(_normalize_logger_name(name)))


__all__ = [
    "LoggerLike",
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
]
