"""Device sub-package — adapters, device registry and cross-device aggregation."""

from biofeedback_engine.devices.adapters import AdapterRegistry
from biofeedback_engine.devices.aggregator import Aggregator
from biofeedback_engine.devices.base import DeviceAdapter, GenericAdapter
from biofeedback_engine.devices.galaxy_watch import GalaxyWatch6Adapter
from biofeedback_engine.devices.registry import DeviceRegistry

__all__ = [
    "AdapterRegistry",
    "Aggregator",
    "DeviceAdapter",
    "DeviceRegistry",
    "GalaxyWatch6Adapter",
    "GenericAdapter",
]
