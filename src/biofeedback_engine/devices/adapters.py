"""Adapter registry — validate and look up device-family adapters by type."""

from __future__ import annotations

from typing import Any

import structlog

from biofeedback_engine.devices.base import DeviceAdapter
from biofeedback_engine.devices.galaxy_watch import GalaxyWatch6Adapter
from biofeedback_engine.errors import ConfigurationError
from biofeedback_engine.processing.schemas import SchemaRegistry

logger = structlog.get_logger(__name__)


class AdapterRegistry:
    """Per-engine registry of :class:`DeviceAdapter` instances.

    Declarations are checked on registration so a device can never be
    created with capabilities the schema registry does not know.
    """

    def __init__(self, schemas: SchemaRegistry, *, register_defaults: bool = True) -> None:
        self._schemas = schemas
        self._adapters: dict[str, DeviceAdapter] = {}
        if register_defaults:
            self.register(GalaxyWatch6Adapter())

    def register(self, adapter: DeviceAdapter) -> DeviceAdapter:
        """Validate and register *adapter*, replacing any with the same type.

        Raises :class:`ConfigurationError` for an invalid declaration.
        """
        if not isinstance(adapter, DeviceAdapter):
            raise ConfigurationError(f"Not a DeviceAdapter: {adapter!r}")
        device_type = getattr(adapter, "device_type", "")
        if not device_type:
            raise ConfigurationError(f"{type(adapter).__name__} declares no device_type")
        capabilities = adapter.capabilities
        if not capabilities:
            raise ConfigurationError(f"Adapter {device_type} declares no capabilities")
        unknown = sorted(c for c in capabilities if c not in self._schemas)
        if unknown:
            raise ConfigurationError(
                f"Adapter {device_type} declares unknown metric types: {unknown}"
            )
        unmapped = sorted(m for m in adapter.data_mapping.values() if m not in capabilities)
        if unmapped:
            raise ConfigurationError(
                f"Adapter {device_type} maps channels onto undeclared metrics: {unmapped}"
            )

        self._adapters[device_type] = adapter
        logger.info(
            "adapter_registry.registered",
            device_type=device_type,
            capabilities=sorted(capabilities),
        )
        return adapter

    def get(self, device_type: str) -> DeviceAdapter:
        """Return the adapter for *device_type*.

        Raises :class:`ConfigurationError` if no adapter is registered.
        """
        adapter = self._adapters.get(device_type)
        if adapter is None:
            raise ConfigurationError(
                f"No adapter registered for device type: {device_type}. "
                f"Available: {self.available()}"
            )
        return adapter

    def is_supported(self, device_type: str) -> bool:
        return device_type in self._adapters

    def available(self) -> list[str]:
        return list(self._adapters)

    def describe(self) -> list[dict[str, Any]]:
        return [
            {"type": t, "name": a.name, "capabilities": sorted(a.capabilities)}
            for t, a in self._adapters.items()
        ]
