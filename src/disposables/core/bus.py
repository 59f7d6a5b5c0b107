"""Event bus for application-wide event publishing and subscription.

Provides a typed, synchronous event system. Events are defined with
type-safe schemas using Pydantic models, and every subscriber runs in the
publisher's turn. A failing subscriber is logged and never prevents the
remaining subscribers from running.

Example:
    class OwnerMountedProps(BaseModel):
        owner_id: str

    OwnerMounted = BusEvent.define("lifecycle.owner.mounted", OwnerMountedProps)

    unsubscribe = Bus.subscribe(OwnerMounted, lambda payload: print(payload.properties))
    Bus.publish(OwnerMounted, {"owner_id": "scenes.list"})
    unsubscribe()
"""

from contextvars import ContextVar, Token
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar('T', bound=BaseModel)

# Lazy logger to avoid circular imports
_log: Optional[Any] = None


def _get_log():
    """Get logger instance lazily to avoid circular imports."""
    global _log
    if _log is None:
        from ..util.log import Log
        _log = Log.create({"service": "bus"})
    return _log


class BusEvent(Generic[T]):
    """Event definition with type and properties schema.

    Attributes:
        type: Unique event type identifier (e.g., "lifecycle.owner.mounted")
        properties_type: Pydantic model class for event properties
    """

    def __init__(self, event_type: str, properties_type: type[T]):
        self.type = event_type
        self.properties_type = properties_type

    @staticmethod
    def define(event_type: str, properties_type: type[T]) -> 'BusEvent[T]':
        """Define and register a new event type.

        Args:
            event_type: Unique event type identifier
            properties_type: Pydantic model class for event properties

        Returns:
            BusEvent instance registered in the global registry
        """
        event = BusEvent(event_type, properties_type)
        _registry[event_type] = event
        return event


# Global event registry for introspection
_registry: Dict[str, BusEvent] = {}


class EventPayload(BaseModel):
    """Payload structure delivered to event subscribers."""
    type: str
    properties: Dict[str, Any]


SubscriptionCallback = Callable[[EventPayload], Any]


_bus_var: ContextVar['Bus'] = ContextVar('_bus_var')


class Bus:
    """Event bus for publishing and subscribing to events.

    ContextVar-backed: each AppContext owns a Bus instance.
    Class methods resolve the active instance transparently.
    """

    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[SubscriptionCallback]] = {}

    @classmethod
    def _current(cls) -> 'Bus':
        try:
            return _bus_var.get()
        except LookupError:
            raise RuntimeError("No Bus is bound to the current context")

    @classmethod
    def is_bound(cls) -> bool:
        return _bus_var.get(None) is not None

    @classmethod
    def provide(cls, bus: 'Bus') -> Token['Bus']:
        return _bus_var.set(bus)

    @classmethod
    def restore(cls, token: Token['Bus']) -> None:
        _bus_var.reset(token)

    @classmethod
    def publish(cls, event: BusEvent[T], properties: T | Dict[str, Any]) -> None:
        cls._current().deliver(cls.payload_for(event, properties))

    @staticmethod
    def payload_for(event: BusEvent[T], properties: T | Dict[str, Any]) -> EventPayload:
        if not isinstance(properties, event.properties_type):
            if isinstance(properties, dict):
                properties = event.properties_type(**properties)
            else:
                raise TypeError(
                    f"Properties must be instance of {event.properties_type.__name__}"
                )

        return EventPayload(
            type=event.type,
            properties=properties.model_dump()
        )

    def deliver(self, payload: EventPayload) -> None:
        """Run this bus's subscribers for an already validated payload."""
        callbacks: List[SubscriptionCallback] = []
        for key in [payload.type, "*"]:
            callbacks.extend(self._subscriptions.get(key, []))

        for callback in callbacks:
            try:
                callback(payload)
            except Exception as e:
                import traceback
                _get_log().error("subscription callback failed", {
                    "error": str(e),
                    "type": payload.type,
                    "traceback": traceback.format_exc(),
                })

    @classmethod
    def subscribe(cls, event: BusEvent[T], callback: SubscriptionCallback) -> Callable[[], None]:
        return cls._current()._raw_subscribe(event.type, callback)

    @classmethod
    def subscribe_all(cls, callback: SubscriptionCallback) -> Callable[[], None]:
        return cls._current()._raw_subscribe("*", callback)

    @classmethod
    def once(cls, event: BusEvent[T], callback: Callable[[EventPayload], Any]) -> None:
        def wrapper(payload: EventPayload):
            result = callback(payload)
            if result == "done" or result is True:
                unsubscribe()

        unsubscribe = cls.subscribe(event, wrapper)

    @classmethod
    def subscriber_count(cls, event: BusEvent[T]) -> int:
        return len(cls._current()._subscriptions.get(event.type, []))

    def listen(self, event: BusEvent[T], callback: SubscriptionCallback) -> Callable[[], None]:
        """Subscribe on this bus instance rather than the context-bound one."""
        return self._raw_subscribe(event.type, callback)

    def _raw_subscribe(
        self,
        event_type: str,
        callback: SubscriptionCallback,
    ) -> Callable[[], None]:
        if event_type not in self._subscriptions:
            self._subscriptions[event_type] = []

        self._subscriptions[event_type].append(callback)

        def unsubscribe() -> None:
            subs = self._subscriptions.get(event_type, [])
            if callback in subs:
                subs.remove(callback)

        return unsubscribe

    def clear(self) -> None:
        self._subscriptions.clear()


# Standard events

class VisibilityChangedProps(BaseModel):
    """Properties for environment.visibility.changed event."""
    hidden: bool


class OwnerMountedProps(BaseModel):
    """Properties for lifecycle.owner.mounted event."""
    owner_id: str


class OwnerDisposedProps(BaseModel):
    """Properties for lifecycle.owner.disposed event.

    Attributes:
        owner_id: Identity of the released owner
        drained: Number of live entries torn down by the final drain
    """
    owner_id: str
    drained: int


VisibilityChanged = BusEvent.define("environment.visibility.changed", VisibilityChangedProps)
OwnerMounted = BusEvent.define("lifecycle.owner.mounted", OwnerMountedProps)
OwnerDisposed = BusEvent.define("lifecycle.owner.disposed", OwnerDisposedProps)
