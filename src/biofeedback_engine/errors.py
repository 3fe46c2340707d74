"""Exception hierarchy for the biofeedback engine.

Only structural misuse reaches callers: :class:`ConfigurationError` from
registration functions and :class:`UnknownDeviceError` from operations on a
device id the registry does not hold.  :class:`DataError` is raised by the
value parsers and always recovered inside the ingestion path.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(EngineError):
    """Unknown metric type, unknown device type or an invalid declaration."""


class UnknownDeviceError(EngineError, KeyError):
    """An operation referenced a device id that is not registered."""

    def __init__(self, device_id: str) -> None:
        super().__init__(device_id)
        self.device_id = device_id

    def __str__(self) -> str:
        return f"Device not found: {self.device_id}"


class DataError(EngineError, ValueError):
    """A raw sample could not be parsed or lies outside its valid range."""

    def __init__(self, metric_type: str, raw_value: object, reason: str) -> None:
        super().__init__(f"{metric_type}: {reason} ({raw_value!r})")
        self.metric_type = metric_type
        self.raw_value = raw_value
        self.reason = reason
