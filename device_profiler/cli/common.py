from __future__ import annotations

import argparse
import logging
from pathlib import Path


LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def add_common_cli_arguments(
    parser: argparse.ArgumentParser,
    *,
    default_log_level: str = "info",
    default_console_output: bool = True,
    include_console_control: bool = True,
) -> None:
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default=default_log_level if default_log_level in LOG_LEVELS else "info",
        help="Logging verbosity",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to write logs (default: the per-user profiler log)",
    )

    if include_console_control:
        console_group = parser.add_mutually_exclusive_group()
        console_group.add_argument(
            "--console",
            dest="console_output",
            action="store_true",
            default=default_console_output,
            help="Also log to console (in addition to file)",
        )
        console_group.add_argument(
            "--no-console",
            dest="console_output",
            action="store_false",
            help="Log to file only (no console output)",
        )


def _bounded_number(value: str, typ: type, name: str, *, allow_zero: bool):
    """Generic sign-checked number validator for argparse."""
    try:
        parsed = typ(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Value must be a {name}") from exc
    if parsed < 0 or (parsed == 0 and not allow_zero):
        raise argparse.ArgumentTypeError("Value must be positive" if not allow_zero else "Value must not be negative")
    return parsed

def positive_int(value: str) -> int:
    return _bounded_number(value, int, "integer", allow_zero=False)

def positive_float(value: str) -> float:
    return _bounded_number(value, float, "number", allow_zero=False)

def non_negative_int(value: str) -> int:
    return _bounded_number(value, int, "integer", allow_zero=True)

def non_negative_float(value: str) -> float:
    return _bounded_number(value, float, "number", allow_zero=True)


__all__ = [
    "LOG_LEVELS",
    "add_common_cli_arguments",
    "non_negative_float",
    "non_negative_int",
    "positive_float",
    "positive_int",
]
