"""Noise filter — bounded per-device ring buffers with metric-specific smoothing."""

from __future__ import annotations

import statistics
from collections import deque

from biofeedback_engine.models import FilterStrategy, MetricType, MetricValue, MotionVector, metric_key
from biofeedback_engine.processing.schemas import SchemaRegistry

_MIN_OUTLIER_SAMPLES = 3

BufferKey = tuple[str, str]


def reject_outliers(buffer: list[float], threshold: float) -> float:
    """Average the samples lying within *threshold* of the buffer median.

    Buffers shorter than three samples return the newest sample unchanged.
    The high median is used so the centre is always an observed sample.
    """
    if len(buffer) < _MIN_OUTLIER_SAMPLES:
        return buffer[-1]
    median = statistics.median_high(buffer)
    kept = [v for v in buffer if abs(v - median) <= threshold]
    return statistics.fmean(kept) if kept else median


def vector_mean(buffer: list[MotionVector]) -> MotionVector:
    return MotionVector(
        x=statistics.fmean(v.x for v in buffer),
        y=statistics.fmean(v.y for v in buffer),
        z=statistics.fmean(v.z for v in buffer),
    )


class NoiseFilter:
    """Smooth normalized samples per ``(device_id, metric)``.

    Each key owns a :class:`collections.deque` of at most *buffer_size*
    samples; older samples are evicted first.  Output depends only on the
    sequence of inputs.
    """

    def __init__(self, schemas: SchemaRegistry, buffer_size: int = 10) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be positive")
        self._schemas = schemas
        self._buffer_size = buffer_size
        self._buffers: dict[BufferKey, deque[MetricValue]] = {}

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    def apply(self, device_id: str, metric: MetricType | str, value: MetricValue) -> MetricValue:
        """Push *value* into its ring buffer and return the filtered value."""
        key = (device_id, metric_key(metric))
        schema = self._schemas.get(metric)
        buffer = self._buffers.get(key)
        if buffer is None:
            buffer = self._buffers[key] = deque(maxlen=self._buffer_size)
        buffer.append(value)

        if isinstance(value, MotionVector):
            vectors = [v for v in buffer if isinstance(v, MotionVector)]
            return vector_mean(vectors)

        scalars = [v for v in buffer if not isinstance(v, MotionVector)]
        if schema.filter_strategy is FilterStrategy.MEDIAN_OUTLIER:
            return reject_outliers(scalars, schema.noise_threshold)
        return statistics.fmean(scalars)

    def buffer(self, device_id: str, metric: MetricType | str) -> list[MetricValue]:
        return list(self._buffers.get((device_id, metric_key(metric)), ()))

    def clear(self, device_id: str | None = None) -> None:
        """Drop every buffer, or only the buffers of *device_id*."""
        if device_id is None:
            self._buffers.clear()
            return
        for key in [k for k in self._buffers if k[0] == device_id]:
            del self._buffers[key]

    def buffer_stats(self) -> dict[str, dict[str, int]]:
        return {
            f"{device_id}_{metric}": {"size": len(buf), "max_size": self._buffer_size}
            for (device_id, metric), buf in self._buffers.items()
        }
