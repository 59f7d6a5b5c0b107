"""Owner record and the facade handed to user code."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..util.log import Log
from .coordinator import VisibilityCoordinator
from .counter import MountCounter
from .registry import DisposalRegistry, SetupFunction

log = Log.create({"service": "lifecycle.owner"})


@dataclass
class OwnerRecord:
    """Per-owner lifecycle state, created together with the owner."""
    owner_id: str
    registry: DisposalRegistry
    counter: MountCounter
    released: bool = False

    @classmethod
    def create(
        cls,
        owner_id: str,
        on_release: Callable[["OwnerRecord"], None],
        *,
        auto_key_prefix: str = "__auto_",
    ) -> "OwnerRecord":
        registry = DisposalRegistry(owner_id, auto_key_prefix=auto_key_prefix)
        record = cls(
            owner_id=owner_id,
            registry=registry,
            counter=MountCounter(owner_id, lambda: on_release(record)),
        )
        return record


@dataclass
class Owner:
    """Disposables surface exposed to setup and teardown code.

    Example:
        owner = owners.mount("dashboard")
        owner.add(lambda: unsubscribe_from_feed(), "feed")
        owner.dispose("feed")
    """
    record: OwnerRecord
    coordinator: Optional[VisibilityCoordinator] = None
    default_pausable: bool = True
    _enrolled: bool = field(default=False, init=False, repr=False)

    @property
    def owner_id(self) -> str:
        return self.record.owner_id

    @property
    def mounted(self) -> bool:
        return not self.record.released and self.record.counter.active

    def keys(self) -> List[str]:
        return self.record.registry.keys()

    def add(
        self,
        setup: SetupFunction,
        key: Optional[str] = None,
        *,
        pausable: Optional[bool] = None,
    ) -> None:
        if self.record.released:
            log.warn("ignoring add on released owner", {"owner_id": self.owner_id, "key": key})
            return
        if pausable is None:
            pausable = self.default_pausable
        self.record.registry.add(setup, key, pausable=pausable)
        if pausable:
            self._enroll()

    def dispose(self, key: str) -> bool:
        if self.record.released:
            return False
        return self.record.registry.dispose(key)

    def _enroll(self) -> None:
        if self._enrolled or self.coordinator is None:
            return
        self._enrolled = self.coordinator.register(self.owner_id, self.record.registry)
