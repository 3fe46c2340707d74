"""Arousal scoring, status bands, confidence and trend — pure functions.

The heuristics are approximate by nature: they map an aggregated snapshot to
one of six coarse statuses and are not calibrated against clinical data.

=============  ======  ==========================================
Metric         Weight  Sub-score
=============  ======  ==========================================
Heart rate     0.4     logistic(clamp((hr - 60) / 40)), k=5 at 0.5
GSR            0.3     clamp(gsr / 50) ** 0.7
Motion         0.2     clamp(|v| / 3)
EEG            0.1     clamp(|eeg| / 200)
=============  ======  ==========================================

Weights are renormalized over the metrics actually present.
"""

from __future__ import annotations

import math
import statistics
from typing import Sequence

from pydantic import BaseModel, Field

from biofeedback_engine.config import Settings
from biofeedback_engine.models import (
    AggregatedSnapshot,
    MetricType,
    MetricValue,
    MotionVector,
    PlayerStatus,
    Trend,
    clamp,
)

# ── Parameters ────────────────────────────────────────────────


class AnalysisParams(BaseModel):
    """Tunable classifier parameters, adjustable at runtime."""

    heart_rate_weight: float = Field(0.4, ge=0.0)
    gsr_weight: float = Field(0.3, ge=0.0)
    motion_weight: float = Field(0.2, ge=0.0)
    eeg_weight: float = Field(0.1, ge=0.0)
    history_length: int = Field(50, ge=1)
    trend_window: int = Field(10, ge=2)
    trend_threshold: float = Field(0.05, ge=0.0)
    state_change_threshold: float = Field(0.1, ge=0.0)
    state_change_band_margin: float = Field(0.05, ge=0.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> AnalysisParams:
        return cls(
            heart_rate_weight=settings.heart_rate_weight,
            gsr_weight=settings.gsr_weight,
            motion_weight=settings.motion_weight,
            eeg_weight=settings.eeg_weight,
            history_length=settings.state_history_length,
            trend_window=settings.trend_window,
            trend_threshold=settings.trend_threshold,
            state_change_threshold=settings.state_change_threshold,
            state_change_band_margin=settings.state_change_band_margin,
        )

    @property
    def weights(self) -> dict[str, float]:
        return {
            MetricType.HEART_RATE.value: self.heart_rate_weight,
            MetricType.GSR.value: self.gsr_weight,
            MetricType.MOTION.value: self.motion_weight,
            MetricType.EEG.value: self.eeg_weight,
        }


# ── Per-metric sub-scores ─────────────────────────────────────


def magnitude(value: MetricValue) -> float:
    if isinstance(value, MotionVector):
        return value.magnitude
    return abs(value)


def heart_rate_score(heart_rate: float) -> float:
    """Logistic curve around 80 bpm for extra sensitivity mid-range."""
    normalized = clamp((heart_rate - 60) / 40)
    return 1 / (1 + math.exp(-5 * (normalized - 0.5)))


def gsr_score(gsr: float) -> float:
    return clamp(gsr / 50) ** 0.7


def motion_score(motion: MetricValue) -> float:
    return clamp(magnitude(motion) / 3)


def eeg_score(eeg: float) -> float:
    return clamp(abs(eeg) / 200)


_SCORERS = {
    MetricType.HEART_RATE.value: heart_rate_score,
    MetricType.GSR.value: gsr_score,
    MetricType.MOTION.value: motion_score,
    MetricType.EEG.value: eeg_score,
}


def available_metrics(snapshot: AggregatedSnapshot, weights: dict[str, float]) -> dict[str, MetricValue]:
    """Arousal metrics in *snapshot* with a non-zero reading and a positive weight.

    Zero readings, including the default a rejected sample falls back to,
    do not count.
    """
    present: dict[str, MetricValue] = {}
    for metric, weight in weights.items():
        value = snapshot.value_for(metric)
        if value is None or weight <= 0:
            continue
        if magnitude(value) > 0:
            present[metric] = value
    return present


def calculate_arousal_score(snapshot: AggregatedSnapshot, weights: dict[str, float]) -> float:
    """Weighted mean of sub-scores over the available metrics (0 if none)."""
    present = available_metrics(snapshot, weights)
    total_weight = sum(weights[m] for m in present)
    if total_weight <= 0:
        return 0.0
    total = sum(_SCORERS[m](v) * weights[m] for m, v in present.items())
    return clamp(total / total_weight)


# ── Status & confidence ───────────────────────────────────────

_STATUS_BANDS: list[tuple[float, PlayerStatus]] = [
    (0.3, PlayerStatus.RELAXED),
    (0.5, PlayerStatus.NORMAL),
    (0.7, PlayerStatus.FOCUSED),
    (0.8, PlayerStatus.ANXIOUS),
]


def determine_status(score: float, has_data: bool = True) -> PlayerStatus:
    if not has_data:
        return PlayerStatus.DISCONNECTED
    for upper, status in _STATUS_BANDS:
        if score < upper:
            return status
    return PlayerStatus.OVERSTIMULATED


def status_band(status: PlayerStatus) -> tuple[float, float]:
    """Score interval ``[lower, upper)`` classified as *status*."""
    lower = 0.0
    for upper, band_status in _STATUS_BANDS:
        if band_status is status:
            return lower, upper
        lower = upper
    return lower, 1.0


def calculate_consistency(values: Sequence[MetricValue]) -> float:
    """``max(0, 1 - CV)`` across metric magnitudes; 0.5 with fewer than two."""
    if len(values) < 2:
        return 0.5
    magnitudes = [magnitude(v) for v in values]
    mean = statistics.fmean(magnitudes)
    if mean == 0:
        return 0.0
    cv = statistics.pstdev(magnitudes) / mean
    return max(0.0, 1 - cv)


def calculate_confidence(
    data_quality: float,
    metric_count: int,
    status: PlayerStatus,
    consistency: float,
) -> float:
    if status is PlayerStatus.DISCONNECTED:
        return 0.0
    confidence = data_quality
    if metric_count < 2:
        confidence *= 0.7
    if status in (PlayerStatus.ANXIOUS, PlayerStatus.OVERSTIMULATED):
        confidence *= 0.9
    confidence *= consistency
    return clamp(confidence)


# ── Trend ─────────────────────────────────────────────────────


def analyze_trend(scores: Sequence[float], threshold: float = 0.05) -> Trend:
    """Compare the mean of the older half of *scores* with the newer half."""
    if len(scores) < 2:
        return Trend.STABLE
    half = len(scores) // 2
    change = statistics.fmean(scores[half:]) - statistics.fmean(scores[:half])
    if change > threshold:
        return Trend.INCREASING
    if change < -threshold:
        return Trend.DECREASING
    return Trend.STABLE
