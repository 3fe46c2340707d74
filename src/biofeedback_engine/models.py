"""Shared Pydantic models used across the engine."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def metric_key(metric: MetricType | str) -> str:
    """Return the plain-string key for a built-in or custom metric type."""
    if isinstance(metric, Enum):
        return str(metric.value)
    return str(metric)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


# ── Enums ─────────────────────────────────────────────────────

class MetricType(str, Enum):
    """Built-in physiological metric types.

    Custom metric types registered at runtime are plain strings; every
    component keys its state by :func:`metric_key`.
    """

    HEART_RATE = "heartRate"
    GSR = "gsr"
    EEG = "eeg"
    MOTION = "motion"
    TEMPERATURE = "temperature"
    BATTERY = "battery"


class FilterStrategy(str, Enum):
    """Smoothing applied by the noise filter to a metric's ring buffer."""

    MEDIAN_OUTLIER = "median_outlier"
    VECTOR_MEAN = "vector_mean"
    MOVING_AVERAGE = "moving_average"


class PlayerStatus(str, Enum):
    DISCONNECTED = "disconnected"
    RELAXED = "relaxed"
    NORMAL = "normal"
    FOCUSED = "focused"
    ANXIOUS = "anxious"
    OVERSTIMULATED = "overstimulated"


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


# ── Values & schemas ──────────────────────────────────────────

class MotionVector(BaseModel):
    """Three-axis acceleration in g."""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    z: float = 1.0

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


MetricValue = Union[float, MotionVector]


class MetricSchema(BaseModel):
    """Validation and filtering contract for one metric type.

    For vector metrics the range applies to each axis independently.
    """

    model_config = ConfigDict(frozen=True)

    metric_type: str
    unit: str = "unknown"
    min_value: float = 0.0
    max_value: float = 100.0
    default_value: MetricValue = 0.0
    noise_threshold: float = Field(1.0, ge=0.0)
    vector: bool = False
    filter_strategy: FilterStrategy = FilterStrategy.MOVING_AVERAGE

    @field_validator("metric_type", mode="before")
    @classmethod
    def _plain_metric_key(cls, v: Any) -> str:
        return metric_key(v)

    @model_validator(mode="after")
    def _check_range(self) -> MetricSchema:
        if not self.min_value < self.max_value:
            raise ValueError(
                f"min_value ({self.min_value}) must be below max_value ({self.max_value})"
            )
        if self.vector:
            if not isinstance(self.default_value, MotionVector):
                raise ValueError("vector metrics need a MotionVector default")
            axes = self.default_value.as_tuple()
        else:
            if isinstance(self.default_value, MotionVector):
                raise ValueError("scalar metrics need a numeric default")
            axes = (self.default_value,)
        if any(not self.min_value <= a <= self.max_value for a in axes):
            raise ValueError("default_value lies outside the valid range")
        return self

    @property
    def span(self) -> float:
        return self.max_value - self.min_value

    def contains(self, value: float) -> bool:
        return self.min_value <= value <= self.max_value


# ── Samples ───────────────────────────────────────────────────

class RawSample(BaseModel):
    """A reading exactly as the driver layer delivered it."""

    device_id: str
    metric_type: str
    raw_value: Any = None
    captured_at: datetime = Field(default_factory=utcnow)

    @field_validator("metric_type", mode="before")
    @classmethod
    def _plain_metric_key(cls, v: Any) -> str:
        return metric_key(v)


class NormalizedSample(BaseModel):
    """A sample after normalization, filtering and quality scoring."""

    device_id: str
    metric_type: str
    value: MetricValue
    filtered_value: MetricValue
    quality: float = Field(ge=0.0, le=1.0)
    substituted: bool = False  # schema default replaced the raw value
    captured_at: datetime
    processed_at: datetime = Field(default_factory=utcnow)


# ── Devices ───────────────────────────────────────────────────

class Device(BaseModel):
    """A registered sensor source.  Owned by the device registry."""

    id: str
    type: str
    name: str = ""
    capabilities: frozenset[str] = frozenset()
    connected: bool = False
    registered_at: datetime = Field(default_factory=utcnow)
    last_seen_at: datetime = Field(default_factory=utcnow)
    info: dict[str, Any] = Field(default_factory=dict)
    per_metric_quality: dict[str, float] = Field(default_factory=dict)

    @property
    def data_quality(self) -> float:
        if not self.per_metric_quality:
            return 0.0
        return sum(self.per_metric_quality.values()) / len(self.per_metric_quality)


# ── Aggregation ───────────────────────────────────────────────

_SNAPSHOT_FIELDS: dict[str, str] = {
    MetricType.HEART_RATE.value: "heart_rate",
    MetricType.GSR.value: "gsr",
    MetricType.MOTION.value: "motion",
    MetricType.EEG.value: "eeg",
    MetricType.TEMPERATURE.value: "temperature",
    MetricType.BATTERY.value: "battery_level",
}


class AggregatedSnapshot(BaseModel):
    """Last known good value per metric across all devices.

    ``None`` means the metric has never been observed.  Instances are
    immutable; :meth:`with_value` returns a rebuilt copy.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime | None = None
    heart_rate: float | None = None
    gsr: float | None = None
    motion: MotionVector | None = None
    eeg: float | None = None
    temperature: float | None = None
    battery_level: float | None = None
    extra: dict[str, float] = Field(default_factory=dict)

    def value_for(self, metric: MetricType | str) -> MetricValue | None:
        key = metric_key(metric)
        field_name = _SNAPSHOT_FIELDS.get(key)
        if field_name is None:
            return self.extra.get(key)
        return getattr(self, field_name)

    def with_value(
        self, metric: MetricType | str, value: MetricValue, timestamp: datetime
    ) -> AggregatedSnapshot:
        key = metric_key(metric)
        field_name = _SNAPSHOT_FIELDS.get(key)
        if field_name is None:
            if isinstance(value, MotionVector):
                value = value.magnitude
            update: dict[str, Any] = {"extra": {**self.extra, key: value}}
        else:
            update = {field_name: value}
        update["timestamp"] = timestamp
        return self.model_copy(update=update)

    def observed(self) -> dict[str, MetricValue]:
        """Return every metric that currently holds a value."""
        values: dict[str, MetricValue] = {}
        for key, field_name in _SNAPSHOT_FIELDS.items():
            value = getattr(self, field_name)
            if value is not None:
                values[key] = value
        values.update(self.extra)
        return values


# ── Player state ──────────────────────────────────────────────

class PlayerState(BaseModel):
    """Classified physiological state of the wearer."""

    status: PlayerStatus = PlayerStatus.DISCONNECTED
    arousal_score: float = 0.0
    confidence: float = 0.0
    data_quality: float = 0.0
    metrics: AggregatedSnapshot = Field(default_factory=AggregatedSnapshot)
    available_metrics: list[str] = Field(default_factory=list)
    trend: Trend = Trend.STABLE
    last_update: datetime = Field(default_factory=utcnow)

    @field_validator("arousal_score", "confidence", "data_quality", mode="before")
    @classmethod
    def _clamp_unit(cls, v: float) -> float:
        v = float(v)
        if math.isnan(v):
            return 0.0
        return clamp(v)


class StateDefinition(BaseModel):
    """Display and nominal values for one :class:`PlayerStatus`."""

    model_config = ConfigDict(frozen=True)

    status: PlayerStatus
    label: str
    color: str
    description: str
    arousal_level: float
    confidence: float


class TrendAnalysis(BaseModel):
    """Dominant trend over the recent state history."""

    trend: Trend = Trend.STABLE
    confidence: float = 0.5
    duration: int = 0  # consecutive most-recent states sharing the trend
