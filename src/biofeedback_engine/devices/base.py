"""Abstract base class for all device-family adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable

from biofeedback_engine.models import Device, MetricType, metric_key


class DeviceAdapter(ABC):
    """Contract every supported device family must declare.

    An adapter is a static descriptor: which metric types the family can
    deliver, how the driver's channel names map onto metric types, and an
    opaque handle to the (external) transport.  It never performs I/O on the
    ingestion path.
    """

    device_type: str
    name: str = ""
    data_mapping: dict[str, str] = {}
    transport: Any = None

    @property
    @abstractmethod
    def capabilities(self) -> frozenset[str]:
        """Metric types this device family delivers."""

    def resolve_metric(self, channel: str) -> str:
        """Map a driver channel name onto a metric type.

        Unmapped channels are taken to be metric types already.
        """
        return self.data_mapping.get(channel, metric_key(channel))

    def on_connect(self, device: Device) -> None:
        """Called after the registry marks *device* connected."""

    def on_disconnect(self, device: Device) -> None:
        """Called after the registry marks *device* disconnected."""


class GenericAdapter(DeviceAdapter):
    """Adapter built from a plain declaration, for arbitrary device families."""

    def __init__(
        self,
        device_type: str,
        capabilities: Iterable[MetricType | str],
        *,
        name: str = "",
        data_mapping: dict[str, MetricType | str] | None = None,
        transport: Any = None,
    ) -> None:
        self.device_type = device_type
        self.name = name or device_type
        self._capabilities = frozenset(metric_key(c) for c in capabilities)
        self.data_mapping = {k: metric_key(v) for k, v in (data_mapping or {}).items()}
        self.transport = transport

    @property
    def capabilities(self) -> frozenset[str]:
        return self._capabilities
