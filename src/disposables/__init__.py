"""Deterministic resource lifecycle management for mountable owners."""

from .lifecycle import (
    DisposalRegistry,
    MountCounter,
    Owner,
    Owners,
    VisibilityCoordinator,
    VisibilityEnvironment,
    safe_invoke,
)
from .runtime import AppContext
from .util.error import DisposablesError, InvalidTeardownError, UnbalancedUnmountError

__version__ = "0.1.0"

__all__ = [
    "AppContext",
    "DisposalRegistry",
    "DisposablesError",
    "InvalidTeardownError",
    "MountCounter",
    "Owner",
    "Owners",
    "UnbalancedUnmountError",
    "VisibilityCoordinator",
    "VisibilityEnvironment",
    "safe_invoke",
]
