"""Aggregator — fan-in of filtered samples into one latest-value snapshot."""

from __future__ import annotations

from datetime import datetime

from biofeedback_engine.models import AggregatedSnapshot, MetricType, MetricValue


class Aggregator:
    """Hold the single :class:`AggregatedSnapshot` shared by all devices.

    Every accepted sample swaps in a rebuilt snapshot, so readers never see
    a half-updated one.  The last writer wins per metric, whichever device
    it came from.
    """

    def __init__(self) -> None:
        self._snapshot = AggregatedSnapshot()

    def update(self, metric: MetricType | str, value: MetricValue, timestamp: datetime) -> AggregatedSnapshot:
        self._snapshot = self._snapshot.with_value(metric, value, timestamp)
        return self._snapshot

    def snapshot(self) -> AggregatedSnapshot:
        return self._snapshot

    def reset(self) -> None:
        self._snapshot = AggregatedSnapshot()
