"""Typed in-process publish/subscribe for engine notifications.

Architecture
~~~~~~~~~~~~
* **Event** — frozen dataclass base; every variant carries a ``name``
  matching the wire-free event names consumers already know
  (``stateChanged``, ``deviceConnected``, ...).
* **EventBus** — synchronous fan-out in subscription order with
  per-subscriber error isolation.
* **DeliveryResult** — per-publish outcome, useful in tests.

Subscribing
~~~~~~~~~~~
Pass either the event class (preferred, gives the handler a typed payload)
or its ``name``::

    bus.subscribe(StateChanged, on_change)
    bus.subscribe("deviceRemoved", on_removed)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, ClassVar, TypeVar

import structlog

from biofeedback_engine.errors import ConfigurationError
from biofeedback_engine.models import Device, NormalizedSample, PlayerState

logger = structlog.get_logger(__name__)


# ── Event variants ────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Event:
    name: ClassVar[str] = "event"


@dataclass(frozen=True, slots=True)
class DeviceRegistered(Event):
    name: ClassVar[str] = "deviceRegistered"
    device: Device


@dataclass(frozen=True, slots=True)
class DeviceConnected(Event):
    name: ClassVar[str] = "deviceConnected"
    device: Device


@dataclass(frozen=True, slots=True)
class DeviceDisconnected(Event):
    name: ClassVar[str] = "deviceDisconnected"
    device: Device


@dataclass(frozen=True, slots=True)
class DeviceRemoved(Event):
    name: ClassVar[str] = "deviceRemoved"
    device: Device


@dataclass(frozen=True, slots=True)
class DataProcessed(Event):
    name: ClassVar[str] = "dataProcessed"
    sample: NormalizedSample


@dataclass(frozen=True, slots=True)
class StateUpdated(Event):
    name: ClassVar[str] = "stateUpdated"
    state: PlayerState


@dataclass(frozen=True, slots=True)
class StateChanged(Event):
    """Published state moved; *previous* is ``None`` for the first publication."""

    name: ClassVar[str] = "stateChanged"
    previous: PlayerState | None
    current: PlayerState


@dataclass(frozen=True, slots=True)
class StateReset(Event):
    name: ClassVar[str] = "stateReset"
    state: PlayerState


EVENT_TYPES: dict[str, type[Event]] = {
    cls.name: cls
    for cls in (
        DeviceRegistered,
        DeviceConnected,
        DeviceDisconnected,
        DeviceRemoved,
        DataProcessed,
        StateUpdated,
        StateChanged,
        StateReset,
    )
}

E = TypeVar("E", bound=Event)
Handler = Callable[[E], None]


# ── Delivery result ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome summary for a single ``publish()`` call."""

    event: str
    delivered: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return len(self.failed) == 0


# ── Bus ───────────────────────────────────────────────────────


def resolve_event_type(event: type[Event] | str) -> type[Event]:
    if isinstance(event, str):
        cls = EVENT_TYPES.get(event)
        if cls is None:
            raise ConfigurationError(
                f"Unknown event name: {event}. Available: {sorted(EVENT_TYPES)}"
            )
        return cls
    if not (isinstance(event, type) and issubclass(event, Event)):
        raise ConfigurationError(f"Not an event type: {event!r}")
    return event


class EventBus:
    """Fan-out events to subscribers with error isolation.

    Each subscriber is invoked independently: a subscriber that raises is
    logged and skipped, and delivery continues with the next one.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type[Event], list[Handler]] = {}
        self._lock = threading.Lock()

    # ── Subscription management ───────────────────────────────

    def subscribe(self, event: type[E] | str, handler: Handler[E]) -> Callable[[], bool]:
        """Register *handler*; return a callable that removes it again."""
        cls = resolve_event_type(event)
        with self._lock:
            self._subscribers.setdefault(cls, []).append(handler)
        return lambda: self.unsubscribe(cls, handler)

    def unsubscribe(self, event: type[Event] | str, handler: Handler) -> bool:
        """Remove the first registration of *handler*. Return ``True`` if found."""
        cls = resolve_event_type(event)
        with self._lock:
            handlers = self._subscribers.get(cls, [])
            for i, h in enumerate(handlers):
                if h == handler:
                    handlers.pop(i)
                    return True
        return False

    def subscriber_count(self, event: type[Event] | str) -> int:
        cls = resolve_event_type(event)
        with self._lock:
            return len(self._subscribers.get(cls, []))

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()

    # ── Publishing ────────────────────────────────────────────

    def publish(self, event: Event) -> DeliveryResult:
        """Deliver *event* to every subscriber of its type, in order."""
        with self._lock:
            handlers = list(self._subscribers.get(type(event), ()))

        delivered = 0
        failed: list[str] = []
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "event_bus.subscriber_error",
                    event_name=event.name,
                    subscriber=getattr(handler, "__qualname__", repr(handler)),
                )
                failed.append(getattr(handler, "__qualname__", repr(handler)))

        return DeliveryResult(event=event.name, delivered=delivered, failed=failed)
