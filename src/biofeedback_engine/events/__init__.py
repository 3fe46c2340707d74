"""Event sub-package — typed notifications for UI and gameplay consumers."""

from biofeedback_engine.events.bus import (
    EVENT_TYPES,
    DataProcessed,
    DeliveryResult,
    DeviceConnected,
    DeviceDisconnected,
    DeviceRegistered,
    DeviceRemoved,
    Event,
    EventBus,
    StateChanged,
    StateReset,
    StateUpdated,
)

__all__ = [
    "EVENT_TYPES",
    "DataProcessed",
    "DeliveryResult",
    "DeviceConnected",
    "DeviceDisconnected",
    "DeviceRegistered",
    "DeviceRemoved",
    "Event",
    "EventBus",
    "StateChanged",
    "StateReset",
    "StateUpdated",
]
