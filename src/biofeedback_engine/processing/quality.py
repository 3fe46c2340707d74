"""Data quality estimator — per-metric trust scores from recency and extremity."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog

from biofeedback_engine.config import Settings
from biofeedback_engine.models import MetricType, MetricValue, MotionVector, clamp, metric_key
from biofeedback_engine.processing.schemas import SchemaRegistry

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class MetricQuality:
    """Running quality for one metric type."""

    quality: float = 0.0
    last_update: datetime | None = None

    @property
    def observed(self) -> bool:
        return self.last_update is not None


class QualityEstimator:
    """Score each metric's trustworthiness in ``[0, 1]``.

    A fresh score starts from ``quality_base`` and is penalized when the
    previous update is older than the lag/stale thresholds and when a scalar
    sits in the outer margin of its valid range.  Scores are blended with the
    previous value (``smoothing * old + (1 - smoothing) * new``); the first
    observation of a metric is stored as-is.
    """

    def __init__(self, schemas: SchemaRegistry, settings: Settings) -> None:
        self._schemas = schemas
        self._settings = settings
        self._metrics: dict[str, MetricQuality] = {}

    # ── Scoring ───────────────────────────────────────────────

    def staleness_factor(self, elapsed_ms: float) -> float:
        s = self._settings
        if elapsed_ms > s.quality_stale_ms:
            return s.quality_stale_factor
        if elapsed_ms > s.quality_lag_ms:
            return s.quality_lag_factor
        return 1.0

    def extremity_factor(self, metric: MetricType | str, value: MetricValue) -> float:
        if isinstance(value, MotionVector):
            return 1.0
        schema = self._schemas.get(metric)
        position = (value - schema.min_value) / schema.span
        margin = self._settings.quality_extremity_margin
        if position < margin or position > 1.0 - margin:
            return self._settings.quality_extremity_factor
        return 1.0

    def update(self, metric: MetricType | str, value: MetricValue, timestamp: datetime) -> float:
        """Fold a new filtered sample into the metric's quality and return it."""
        key = metric_key(metric)
        state = self._metrics.setdefault(key, MetricQuality())

        fresh = self._settings.quality_base * self.extremity_factor(key, value)
        if state.last_update is None:
            state.quality = fresh
        else:
            elapsed_ms = (timestamp - state.last_update).total_seconds() * 1000
            fresh *= self.staleness_factor(elapsed_ms)
            w = self._settings.quality_smoothing
            state.quality = w * state.quality + (1 - w) * fresh

        state.quality = clamp(state.quality)
        state.last_update = timestamp
        return state.quality

    # ── Queries ───────────────────────────────────────────────

    def quality(self, metric: MetricType | str) -> float:
        state = self._metrics.get(metric_key(metric))
        return state.quality if state else 0.0

    def last_update(self, metric: MetricType | str) -> datetime | None:
        state = self._metrics.get(metric_key(metric))
        return state.last_update if state else None

    def effective_quality(self, metric: MetricType | str, now: datetime) -> float:
        """Stored quality discounted by how stale the metric is at *now*.

        Read-only: nothing is recorded, so an idle metric decays on every
        query instead of vanishing.
        """
        state = self._metrics.get(metric_key(metric))
        if state is None or state.last_update is None:
            return 0.0
        elapsed_ms = (now - state.last_update).total_seconds() * 1000
        return clamp(state.quality * self.staleness_factor(elapsed_ms))

    def overall(self) -> float:
        """Mean quality over metrics with at least one sample (0 if none)."""
        observed = [s.quality for s in self._metrics.values() if s.observed]
        if not observed:
            return 0.0
        return clamp(sum(observed) / len(observed))

    def snapshot(self) -> dict[str, float]:
        return {k: s.quality for k, s in self._metrics.items() if s.observed}

    def reset(self) -> None:
        self._metrics.clear()
