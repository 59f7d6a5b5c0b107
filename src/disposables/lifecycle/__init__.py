"""Resource lifecycle: registries, mount counting and visibility pausing."""

from .safe import Outcome, safe_invoke
from .registry import DisposableEntry, DisposableFunction, DisposalRegistry, SetupFunction
from .counter import MountCounter
from .visibility import VisibilityEnvironment, VisibilitySource
from .coordinator import VisibilityCoordinator
from .owner import Owner, OwnerRecord
from .host import Owners

__all__ = [
    "Outcome",
    "safe_invoke",
    "DisposableEntry",
    "DisposableFunction",
    "DisposalRegistry",
    "SetupFunction",
    "MountCounter",
    "VisibilityEnvironment",
    "VisibilitySource",
    "VisibilityCoordinator",
    "Owner",
    "OwnerRecord",
    "Owners",
]
