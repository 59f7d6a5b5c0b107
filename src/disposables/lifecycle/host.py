"""Owner identity index.

The host framework decides when an owner becomes active. It reports each
independent activation through ``mount`` and each deactivation through
``unmount``; the index keeps one record per live owner identity and releases
it when the last claim goes away.

Example:
    owners = Owners(VisibilityCoordinator(VisibilityEnvironment()))

    panel = owners.mount(owners.identity("panels.chart", key=7))
    panel.add(start_polling, "polling")

    owners.mount(panel.owner_id)    # second view of the same chart
    owners.unmount(panel.owner_id)  # still mounted, nothing torn down
    owners.unmount(panel.owner_id)  # polling stops here
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..core.bus import Bus, OwnerDisposed, OwnerMounted
from ..util.error import UnbalancedUnmountError
from ..util.log import Log
from .coordinator import VisibilityCoordinator
from .owner import Owner, OwnerRecord

log = Log.create({"service": "lifecycle.host"})


class Owners:
    """Per-process index of live owners keyed by identity."""

    def __init__(
        self,
        coordinator: Optional[VisibilityCoordinator] = None,
        *,
        pause_on_hidden: bool = True,
        default_pausable: bool = True,
        auto_key_prefix: str = "__auto_",
    ) -> None:
        self.coordinator = coordinator
        self.pause_on_hidden = pause_on_hidden
        self.default_pausable = default_pausable
        self.auto_key_prefix = auto_key_prefix
        self._owners: Dict[str, Owner] = {}

    def __len__(self) -> int:
        return len(self._owners)

    @staticmethod
    def identity(path: str, key: Any = None) -> str:
        """Build the identity string of an owner, optionally parameterised by key."""
        if key is None:
            return path
        return f"{path}.{key}"

    def owner_ids(self) -> List[str]:
        return list(self._owners)

    def get(self, owner_id: str) -> Optional[Owner]:
        return self._owners.get(owner_id)

    def is_mounted(self, owner_id: str) -> bool:
        owner = self._owners.get(owner_id)
        return owner is not None and owner.mounted

    def mount(self, owner_id: str) -> Owner:
        owner = self._owners.get(owner_id)
        if owner is None:
            record = OwnerRecord.create(
                owner_id, self._release, auto_key_prefix=self.auto_key_prefix
            )
            owner = Owner(
                record=record,
                coordinator=self.coordinator if self.pause_on_hidden else None,
                default_pausable=self.default_pausable,
            )
            self._owners[owner_id] = owner
            log.debug("owner created", {"owner_id": owner_id})
            if Bus.is_bound():
                Bus.publish(OwnerMounted, {"owner_id": owner_id})
        owner.record.counter.increment()
        return owner

    def unmount(self, owner_id: str) -> bool:
        """Drop one activation claim. Returns True if this released the owner."""
        owner = self._owners.get(owner_id)
        if owner is None:
            raise UnbalancedUnmountError(owner_id)
        return owner.record.counter.decrement() == 0

    def unmount_all(self) -> int:
        """Release every live owner regardless of outstanding claims."""
        released = 0
        for owner_id, owner in list(self._owners.items()):
            if self._owners.get(owner_id) is not owner:
                continue
            self._release(owner.record)
            released += 1
        if released:
            log.info("released all owners", {"count": released})
        return released

    def _release(self, record: OwnerRecord) -> None:
        if record.released:
            return
        record.released = True
        drained = record.registry.drain_all()
        if self.coordinator is not None:
            self.coordinator.unregister(record.owner_id)
        current = self._owners.get(record.owner_id)
        if current is not None and current.record is record:
            del self._owners[record.owner_id]
        log.debug("owner released", {"owner_id": record.owner_id, "drained": drained})
        if Bus.is_bound():
            Bus.publish(OwnerDisposed, {"owner_id": record.owner_id, "drained": drained})
