"""Visibility-driven pause/resume broadcast.

One coordinator serves the whole process. It holds at most one subscription
to the visibility source, taken when the first owner registers and released
when the last one leaves. Owners are independent; the order in which they
are paused or resumed is unspecified.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from ..util.log import Log, Logger
from .registry import DisposalRegistry
from .safe import safe_invoke
from .visibility import VisibilitySource

log = Log.create({"service": "lifecycle.coordinator"})


class VisibilityCoordinator:
    """Pauses and resumes pausable entries of every registered owner."""

    def __init__(self, source: VisibilitySource, *, logger: Optional[Logger] = None) -> None:
        self._source = source
        self._owners: Dict[str, DisposalRegistry] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._hidden = source.is_hidden()
        self._log = logger or log

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    @property
    def hidden(self) -> bool:
        return self._hidden

    def owners(self) -> List[str]:
        return list(self._owners)

    def is_registered(self, owner_id: str) -> bool:
        return owner_id in self._owners

    def register(self, owner_id: str, registry: DisposalRegistry) -> bool:
        """Add an owner to the broadcast set.

        The first registration subscribes to the source. If subscribing
        fails the owner is not added, the failure is logged, and False is
        returned so the caller can retry on a later add.
        """
        if owner_id in self._owners:
            return True
        if self._unsubscribe is None:
            hidden = self._source.is_hidden()
            outcome = safe_invoke(
                lambda: self._source.subscribe(self._on_visibility),
                f"visibility subscribe failed for owner {owner_id}",
                owner_id,
                self._log,
            )
            if not outcome.ok:
                return False
            self._hidden = hidden
            self._unsubscribe = outcome.value
            self._log.debug("subscribed to visibility", {"hidden": self._hidden})
        self._owners[owner_id] = registry
        return True

    def unregister(self, owner_id: str) -> None:
        if self._owners.pop(owner_id, None) is None:
            return
        if not self._owners:
            self._release_subscription()

    def close(self) -> None:
        """Forget every owner and release the visibility subscription."""
        self._owners.clear()
        self._release_subscription()

    def _release_subscription(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
            self._log.debug("unsubscribed from visibility")

    def _on_visibility(self, hidden: bool) -> None:
        if hidden == self._hidden:
            return
        self._hidden = hidden
        if hidden:
            self.pause_all()
        else:
            self.resume_all()

    def pause_all(self) -> int:
        paused = 0
        for owner_id, registry in list(self._owners.items()):
            if self._owners.get(owner_id) is not registry:
                continue
            outcome = safe_invoke(
                registry.pause, f"pause failed for owner {owner_id}", owner_id, self._log
            )
            paused += outcome.value or 0
        self._log.info("paused disposables", {"owners": len(self._owners), "count": paused})
        return paused

    def resume_all(self) -> int:
        resumed = 0
        for owner_id, registry in list(self._owners.items()):
            if self._owners.get(owner_id) is not registry:
                continue
            outcome = safe_invoke(
                registry.resume, f"resume failed for owner {owner_id}", owner_id, self._log
            )
            resumed += outcome.value or 0
        self._log.info("resumed disposables", {"owners": len(self._owners), "count": resumed})
        return resumed
