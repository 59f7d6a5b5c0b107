"""Process-wide application visibility signal.

The environment keeps a single hidden/visible flag and announces changes on
the event bus. Consumers subscribe through the ``VisibilitySource`` protocol
so tests and hosts can substitute their own signal.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from ..core.bus import Bus, EventPayload, VisibilityChanged
from ..util.log import Log

log = Log.create({"service": "lifecycle.visibility"})

VisibilityCallback = Callable[[bool], None]


class VisibilitySource(Protocol):
    """Global visibility flag plus a subscribe/unsubscribe pair."""

    def is_hidden(self) -> bool: ...

    def subscribe(self, callback: VisibilityCallback) -> Callable[[], None]: ...


class VisibilityEnvironment:
    """Bus-backed visibility flag.

    ``set_hidden`` only publishes on an actual change, so subscribers see
    edges, never repeated states. The bus is fixed at construction: the one
    passed in, else the bus bound to the current context, else a private one.
    """

    def __init__(self, hidden: bool = False, *, bus: Optional[Bus] = None) -> None:
        self._hidden = hidden
        if bus is None:
            bus = Bus._current() if Bus.is_bound() else Bus()
        self.bus = bus

    def is_hidden(self) -> bool:
        return self._hidden

    def set_hidden(self, hidden: bool) -> bool:
        """Update the flag. Returns True when the state changed."""
        if hidden == self._hidden:
            return False
        self._hidden = hidden
        log.info("visibility changed", {"hidden": hidden})
        self.bus.deliver(Bus.payload_for(VisibilityChanged, {"hidden": hidden}))
        return True

    def hide(self) -> bool:
        return self.set_hidden(True)

    def show(self) -> bool:
        return self.set_hidden(False)

    def subscribe(self, callback: VisibilityCallback) -> Callable[[], None]:
        def handler(payload: EventPayload) -> None:
            callback(bool(payload.properties["hidden"]))

        return self.bus.listen(VisibilityChanged, handler)
