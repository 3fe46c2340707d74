"""Real-time wearable telemetry normalization and player-state classification."""

from biofeedback_engine.engine import BiofeedbackEngine
from biofeedback_engine.errors import (
    ConfigurationError,
    DataError,
    EngineError,
    UnknownDeviceError,
)
from biofeedback_engine.logger import setup_logging

__all__ = [
    "BiofeedbackEngine",
    "ConfigurationError",
    "DataError",
    "EngineError",
    "UnknownDeviceError",
    "setup_logging",
]

__version__ = "0.1.0"
