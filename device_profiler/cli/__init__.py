"""Shared command-line helpers."""

from .common import (
    LOG_LEVELS,
    add_common_cli_arguments,
    non_negative_float,
    non_negative_int,
    positive_float,
    positive_int,
)

__all__ = [
    'LOG_LEVELS',
    'add_common_cli_arguments',
    'non_negative_float',
    'non_negative_int',
    'positive_float',
    'positive_int',
]
