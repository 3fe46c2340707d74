"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from biofeedback_engine.config import Settings
from biofeedback_engine.devices.base import GenericAdapter
from biofeedback_engine.engine import BiofeedbackEngine
from biofeedback_engine.events.bus import EventBus
from biofeedback_engine.models import Device, MetricType
from biofeedback_engine.processing.schemas import SchemaRegistry

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> Callable[[float], datetime]:
    """Return ``at(seconds)`` giving a fixed timestamp *seconds* after T0."""

    def at(seconds: float = 0.0) -> datetime:
        return T0 + timedelta(seconds=seconds)

    return at


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def schemas() -> SchemaRegistry:
    return SchemaRegistry()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def engine(settings: Settings) -> BiofeedbackEngine:
    return BiofeedbackEngine(settings)


@pytest.fixture
def lab_adapter() -> GenericAdapter:
    """A bench sensor that delivers every built-in metric."""
    return GenericAdapter(
        "lab-sensor",
        [
            MetricType.HEART_RATE,
            MetricType.GSR,
            MetricType.MOTION,
            MetricType.EEG,
            MetricType.TEMPERATURE,
            MetricType.BATTERY,
        ],
        name="Lab sensor",
        data_mapping={"skin": MetricType.GSR},
    )


@pytest.fixture
def watch(engine: BiofeedbackEngine) -> Device:
    """A connected Galaxy Watch6 registered as ``d1``."""
    engine.register_device("galaxy-watch6", {"id": "d1"})
    return engine.connect("d1")


@pytest.fixture
def lab(engine: BiofeedbackEngine, lab_adapter: GenericAdapter) -> Device:
    """A connected lab sensor registered as ``lab1``."""
    engine.register_adapter(lab_adapter)
    engine.register_device("lab-sensor", {"id": "lab1", "signal_strength": 0.95})
    return engine.connect("lab1")
