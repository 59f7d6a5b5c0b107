"""Error types and formatting utilities."""

import json
from typing import Any


class DisposablesError(Exception):
    """Base class for lifecycle errors raised to callers."""


class UnbalancedUnmountError(DisposablesError):
    """Raised when an owner is deactivated more often than it was activated."""

    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        super().__init__(f"owner {owner_id} unmounted more times than it was mounted")


class InvalidTeardownError(DisposablesError, TypeError):
    """Raised when a setup function does not return a callable teardown."""

    def __init__(self, key: str, owner_id: str, value: Any):
        self.key = key
        self.owner_id = owner_id
        super().__init__(
            f"setup for key {key} in owner {owner_id} returned "
            f"{type(value).__name__}, expected a callable teardown"
        )


def format_error(error: Any) -> str | None:
    """Format known lifecycle errors into user-friendly messages.

    Returns None if the error type is not recognized, allowing
    fallback to format_unknown_error.
    """
    if isinstance(error, UnbalancedUnmountError):
        return f"Owner \"{error.owner_id}\" was unmounted without a matching mount"
    if isinstance(error, InvalidTeardownError):
        return f"Setup for \"{error.key}\" in \"{error.owner_id}\" must return a teardown function"
    return None


def format_unknown_error(error: Any) -> str:
    """Format any error into a string representation.

    Handles Exception objects, serializable objects, and primitives.
    """
    if isinstance(error, Exception):
        import traceback
        if hasattr(error, '__traceback__') and error.__traceback__:
            return ''.join(traceback.format_exception(type(error), error, error.__traceback__))
        return f"{error.__class__.__name__}: {str(error)}"

    if isinstance(error, dict) or isinstance(error, list):
        try:
            return json.dumps(error, indent=2)
        except (TypeError, ValueError):
            return "Unexpected error (unserializable)"

    return str(error)
