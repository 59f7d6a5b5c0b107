"""Mount reference counting for one owner identity."""

from __future__ import annotations

from typing import Callable

from ..util.error import UnbalancedUnmountError


class MountCounter:
    """Counts concurrent activation claims on an owner.

    ``on_release`` runs once, when the count drops from 1 to 0. Deactivations
    while other claims remain never release anything.
    """

    def __init__(self, owner_id: str, on_release: Callable[[], None]) -> None:
        self.owner_id = owner_id
        self._on_release = on_release
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def active(self) -> bool:
        return self._count > 0

    def increment(self) -> int:
        self._count += 1
        return self._count

    def decrement(self) -> int:
        if self._count == 0:
            raise UnbalancedUnmountError(self.owner_id)
        self._count -= 1
        if self._count == 0:
            self._on_release()
        return self._count
