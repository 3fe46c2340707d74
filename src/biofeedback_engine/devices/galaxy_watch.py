"""Galaxy Watch6 adapter — the device family registered by default."""

from __future__ import annotations

from biofeedback_engine.devices.base import DeviceAdapter
from biofeedback_engine.models import MetricType


class GalaxyWatch6Adapter(DeviceAdapter):
    """Heart rate, accelerometer, skin temperature and battery level.

    The watch driver publishes on its own channel names; ``data_mapping``
    translates them for :meth:`BiofeedbackEngine.on_raw_sample`.
    """

    device_type = "galaxy-watch6"
    name = "Galaxy Watch6"
    data_mapping = {
        "heartRateData": MetricType.HEART_RATE.value,
        "motionData": MetricType.MOTION.value,
        "temperature": MetricType.TEMPERATURE.value,
        "batteryLevel": MetricType.BATTERY.value,
    }

    @property
    def capabilities(self) -> frozenset[str]:
        return frozenset(
            m.value
            for m in (
                MetricType.HEART_RATE,
                MetricType.MOTION,
                MetricType.TEMPERATURE,
                MetricType.BATTERY,
            )
        )
