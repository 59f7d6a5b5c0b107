"""Application runtime context and lifecycle container."""

from __future__ import annotations

from contextvars import Token

from ..core.bus import Bus
from ..core.config import ConfigManager
from ..core.config_schema import LifecycleConfig
from ..lifecycle.coordinator import VisibilityCoordinator
from ..lifecycle.host import Owners
from ..lifecycle.visibility import VisibilityEnvironment
from ..util.log import Log

log = Log.create({"service": "runtime"})


class AppContext:
    """Process-level container for the lifecycle services.

    Created once per application lifetime. Owns the event bus, the single
    visibility environment and coordinator, and the owner index; hosts mount
    and unmount owners through ``owners``.
    """

    __slots__ = (
        "bus",
        "visibility",
        "coordinator",
        "owners",
        "lifecycle",
        "started",
        "_bus_token",
    )

    def __init__(self) -> None:
        self.bus = Bus()
        self.visibility = VisibilityEnvironment(bus=self.bus)
        self.coordinator = VisibilityCoordinator(self.visibility)
        self.owners = Owners(self.coordinator)
        self.lifecycle = LifecycleConfig()
        self.started = False
        self._bus_token: Token[Bus] | None = None

    async def startup(self) -> None:
        if self.started:
            return

        if self._bus_token is None:
            self._bus_token = Bus.provide(self.bus)

        try:
            config = await ConfigManager.get()
        except Exception:
            Bus.restore(self._bus_token)
            self._bus_token = None
            raise

        self.lifecycle = config.lifecycle
        self.owners.pause_on_hidden = self.lifecycle.pause_on_hidden
        self.owners.default_pausable = self.lifecycle.default_pausable
        self.owners.auto_key_prefix = self.lifecycle.auto_key_prefix
        if self.lifecycle.start_hidden:
            self.visibility.hide()

        self.started = True
        log.info("runtime started", {
            "pause_on_hidden": self.lifecycle.pause_on_hidden,
            "hidden": self.visibility.is_hidden(),
        })

    async def shutdown(self) -> None:
        if not self.started:
            return
        released = self.owners.unmount_all()
        self.coordinator.close()
        self.bus.clear()
        if self._bus_token is not None:
            Bus.restore(self._bus_token)
            self._bus_token = None
        self.started = False
        log.info("runtime stopped", {"released": released})
