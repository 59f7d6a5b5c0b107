"""Per-owner registry of live disposables.

Each owner holds exactly one DisposalRegistry. Entries are kept in insertion
order, and every teardown goes through ``safe_invoke`` so that one failing
resource never keeps its siblings alive.

Example:
    registry = DisposalRegistry("scenes.list")

    def poll():
        handle = loop.call_later(5, refresh)
        return handle.cancel

    registry.add(poll, "polling")
    registry.add(poll, "polling")  # cancels the first handle, then polls again
    registry.drain_all()           # cancels the second handle
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..util.error import DisposablesError, InvalidTeardownError
from ..util.log import Log, Logger
from .safe import resume_context, safe_invoke, teardown_context

log = Log.create({"service": "lifecycle.registry"})

DisposableFunction = Callable[[], None]
SetupFunction = Callable[[], DisposableFunction]


@dataclass
class DisposableEntry:
    """One registered resource.

    ``setup`` is retained only for pausable entries so it can be replayed
    on resume. ``teardown`` is None only while the entry is paused.
    """
    key: str
    teardown: Optional[DisposableFunction]
    pausable: bool = True
    setup: Optional[SetupFunction] = None


class DisposalRegistry:
    """Keyed store of active cleanup callbacks for one owner."""

    def __init__(
        self,
        owner_id: str,
        *,
        auto_key_prefix: str = "__auto_",
        logger: Optional[Logger] = None,
    ) -> None:
        self.owner_id = owner_id
        self._auto_key_prefix = auto_key_prefix
        self._key_counter = 0
        self._entries: Dict[str, DisposableEntry] = {}
        self._paused: List[DisposableEntry] = []
        self._log = logger or log

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> List[str]:
        return list(self._entries)

    def paused_keys(self) -> List[str]:
        return [entry.key for entry in self._paused]

    def _next_key(self) -> str:
        key = f"{self._auto_key_prefix}{self._key_counter}"
        self._key_counter += 1
        return key

    def _teardown(self, entry: DisposableEntry) -> bool:
        teardown, entry.teardown = entry.teardown, None
        if teardown is None:
            return True
        return safe_invoke(
            teardown, teardown_context(entry.key, self.owner_id), self.owner_id, self._log
        ).ok

    def _drop_paused(self, key: str) -> bool:
        for index, entry in enumerate(self._paused):
            if entry.key == key:
                del self._paused[index]
                return True
        return False

    def add(
        self,
        setup: SetupFunction,
        key: Optional[str] = None,
        *,
        pausable: bool = True,
    ) -> None:
        """Run ``setup`` now and register the teardown it returns.

        A keyed add first tears down any live entry under the same key and
        forgets any paused one. Exceptions raised by ``setup`` propagate.
        """
        if key is None:
            key = self._next_key()
        else:
            previous = self._entries.pop(key, None)
            if previous is not None:
                self._teardown(previous)
            self._drop_paused(key)

        teardown = setup()
        if not callable(teardown):
            raise InvalidTeardownError(key, self.owner_id, teardown)

        self._entries[key] = DisposableEntry(
            key=key,
            teardown=teardown,
            pausable=pausable,
            setup=setup if pausable else None,
        )

    def dispose(self, key: str) -> bool:
        """Tear down and forget the entry for ``key``.

        Returns True when an entry existed, even if its teardown raised.
        A paused entry is simply forgotten; its teardown already ran.
        """
        entry = self._entries.pop(key, None)
        if entry is None:
            return self._drop_paused(key)
        self._teardown(entry)
        return True

    def drain_all(self) -> int:
        """Tear down every live entry in insertion order and clear the registry."""
        entries = list(self._entries.values())
        self._entries.clear()
        self._paused.clear()
        for entry in entries:
            self._teardown(entry)
        if entries:
            self._log.debug("drained", {"owner_id": self.owner_id, "count": len(entries)})
        return len(entries)

    def pause(self) -> int:
        """Tear down pausable entries, keeping them for a later ``resume``.

        A teardown may dispose a sibling; that sibling is then gone for good
        and is not paused.
        """
        paused = 0
        for entry in [entry for entry in self._entries.values() if entry.pausable]:
            if self._entries.pop(entry.key, None) is None:
                continue
            self._teardown(entry)
            self._paused.append(entry)
            paused += 1
        return paused

    def resume(self) -> int:
        """Re-run the setup of every paused entry in its original order.

        An entry whose setup fails is logged and dropped, not retried. A
        resumed setup may dispose or re-add a sibling that is still waiting;
        that sibling is then not replayed.
        """
        resumed = 0
        for entry in list(self._paused):
            if not self._take_paused(entry):
                continue
            outcome = safe_invoke(
                lambda: self._replay(entry),
                resume_context(entry.key, self.owner_id),
                self.owner_id,
                self._log,
            )
            if not outcome.ok:
                continue
            entry.teardown = outcome.value
            self._entries[entry.key] = entry
            resumed += 1
        return resumed

    def _take_paused(self, entry: DisposableEntry) -> bool:
        for index, candidate in enumerate(self._paused):
            if candidate is entry:
                del self._paused[index]
                return True
        return False

    def _replay(self, entry: DisposableEntry) -> DisposableFunction:
        if entry.setup is None:
            raise DisposablesError(
                f"entry {entry.key} in owner {self.owner_id} has no setup to replay"
            )
        teardown = entry.setup()
        if not callable(teardown):
            raise InvalidTeardownError(entry.key, self.owner_id, teardown)
        return teardown
