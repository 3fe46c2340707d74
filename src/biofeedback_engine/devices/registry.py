"""Device registry — known sensor sources and their connection lifecycle."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import structlog

from biofeedback_engine.devices.adapters import AdapterRegistry
from biofeedback_engine.devices.base import DeviceAdapter
from biofeedback_engine.errors import ConfigurationError, UnknownDeviceError
from biofeedback_engine.events.bus import (
    DeviceConnected,
    DeviceDisconnected,
    DeviceRegistered,
    DeviceRemoved,
    EventBus,
)
from biofeedback_engine.models import Device, MetricType, metric_key, utcnow

logger = structlog.get_logger(__name__)

_DEFAULT_SIGNAL_STRENGTH = 0.8


class DeviceRegistry:
    """Track registered devices and publish their lifecycle events.

    The registry is not locked itself; :class:`BiofeedbackEngine` serializes
    every call.  Events carry deep copies so subscribers cannot mutate
    registry state.
    """

    def __init__(self, adapters: AdapterRegistry, bus: EventBus) -> None:
        self._adapters = adapters
        self._bus = bus
        self._devices: dict[str, Device] = {}

    # ── Lifecycle ─────────────────────────────────────────────

    def register(self, device_type: str, info: dict[str, Any] | None = None) -> Device:
        """Create a device of *device_type*.

        ``info["id"]`` and ``info["name"]`` are used when present.  Raises
        :class:`ConfigurationError` for unknown device types or duplicate ids.
        """
        info = dict(info or {})
        adapter = self._adapters.get(device_type)
        device_id = str(info.get("id") or f"device_{uuid.uuid4().hex[:12]}")
        if device_id in self._devices:
            raise ConfigurationError(f"Device already registered: {device_id}")

        device = Device(
            id=device_id,
            type=device_type,
            name=info.get("name") or adapter.name,
            capabilities=adapter.capabilities,
            info=info,
        )
        self._devices[device_id] = device

        logger.info("device_registry.registered", device_id=device_id, device_type=device_type)
        self._bus.publish(DeviceRegistered(device=device.model_copy(deep=True)))
        return device.model_copy(deep=True)

    def connect(self, device_id: str, timestamp: datetime | None = None) -> Device:
        device = self._require(device_id)
        device.connected = True
        device.last_seen_at = timestamp or utcnow()
        self._run_hook(self.adapter_for(device).on_connect, device)

        logger.info("device_registry.connected", device_id=device_id)
        self._bus.publish(DeviceConnected(device=device.model_copy(deep=True)))
        return device.model_copy(deep=True)

    def disconnect(self, device_id: str) -> Device:
        """Mark *device_id* unreachable; its last qualities are kept."""
        device = self._require(device_id)
        device.connected = False
        self._run_hook(self.adapter_for(device).on_disconnect, device)

        logger.info("device_registry.disconnected", device_id=device_id)
        self._bus.publish(DeviceDisconnected(device=device.model_copy(deep=True)))
        return device.model_copy(deep=True)

    def remove(self, device_id: str) -> Device:
        """Delete every trace of *device_id* from the registry."""
        device = self._devices.pop(device_id, None)
        if device is None:
            raise UnknownDeviceError(device_id)
        device.connected = False

        logger.info("device_registry.removed", device_id=device_id)
        self._bus.publish(DeviceRemoved(device=device))
        return device

    def record_quality(
        self, device_id: str, metric: MetricType | str, quality: float, timestamp: datetime
    ) -> None:
        device = self._require(device_id)
        device.per_metric_quality[metric_key(metric)] = quality
        device.last_seen_at = timestamp

    # ── Queries ───────────────────────────────────────────────

    def get(self, device_id: str) -> Device:
        return self._require(device_id).model_copy(deep=True)

    def peek(self, device_id: str) -> Device | None:
        """Return the live record (no copy) or ``None``; for the engine only."""
        return self._devices.get(device_id)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    def __len__(self) -> int:
        return len(self._devices)

    def devices(self) -> list[Device]:
        return [d.model_copy(deep=True) for d in self._devices.values()]

    def connected(self) -> list[Device]:
        return [d.model_copy(deep=True) for d in self._devices.values() if d.connected]

    def connection_status(self, device_id: str) -> str:
        device = self._devices.get(device_id)
        if device is None:
            return "unknown"
        return "connected" if device.connected else "disconnected"

    def signal_strength(self, device_id: str) -> float:
        device = self._devices.get(device_id)
        if device is None:
            return 0.0
        return float(device.info.get("signal_strength", _DEFAULT_SIGNAL_STRENGTH))

    def adapter_for(self, device: Device) -> DeviceAdapter:
        return self._adapters.get(device.type)

    # ── Internals ─────────────────────────────────────────────

    def _require(self, device_id: str) -> Device:
        device = self._devices.get(device_id)
        if device is None:
            raise UnknownDeviceError(device_id)
        return device

    @staticmethod
    def _run_hook(hook: Any, device: Device) -> None:
        try:
            hook(device.model_copy(deep=True))
        except Exception:
            logger.exception("device_registry.adapter_hook_error", device_id=device.id)
