"""Utility modules."""

from .log import Log
from .error import (
    DisposablesError,
    InvalidTeardownError,
    UnbalancedUnmountError,
    format_error,
    format_unknown_error,
)

__all__ = [
    "Log",
    "DisposablesError",
    "InvalidTeardownError",
    "UnbalancedUnmountError",
    "format_error",
    "format_unknown_error",
]
