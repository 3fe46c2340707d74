"""Data processor — runs one raw sample through normalize → filter → score."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from biofeedback_engine.config import Settings
from biofeedback_engine.models import MetricType, NormalizedSample, metric_key, utcnow
from biofeedback_engine.processing.filters import NoiseFilter
from biofeedback_engine.processing.normalizer import SampleNormalizer
from biofeedback_engine.processing.quality import QualityEstimator
from biofeedback_engine.processing.schemas import SchemaRegistry

logger = structlog.get_logger(__name__)


class DataProcessor:
    """Unify samples from every device into :class:`NormalizedSample` objects.

    ``time_offset`` is added to every capture timestamp so device clocks
    can be aligned with the host clock before staleness is judged.
    """

    def __init__(
        self,
        settings: Settings,
        schemas: SchemaRegistry | None = None,
        *,
        time_offset: timedelta = timedelta(0),
    ) -> None:
        self.schemas = schemas or SchemaRegistry()
        self.normalizer = SampleNormalizer(self.schemas)
        self.noise_filter = NoiseFilter(self.schemas, settings.filter_buffer_size)
        self.quality = QualityEstimator(self.schemas, settings)
        self.time_offset = time_offset

    def synchronize(self, timestamp: datetime) -> datetime:
        """Align *timestamp* with the host clock; naive values are taken as UTC."""
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return timestamp + self.time_offset

    def process(
        self,
        device_id: str,
        metric: MetricType | str,
        raw_value: Any,
        timestamp: datetime | None = None,
    ) -> NormalizedSample:
        """Normalize, filter and quality-score a raw reading.

        Raises :class:`ConfigurationError` for unknown metric types; bad
        values are replaced by the schema default.
        """
        key = metric_key(metric)
        captured_at = self.synchronize(timestamp or utcnow())

        value, substituted = self.normalizer.normalize_with_status(key, raw_value)
        filtered = self.noise_filter.apply(device_id, key, value)
        quality = self.quality.update(key, filtered, captured_at)

        return NormalizedSample(
            device_id=device_id,
            metric_type=key,
            value=value,
            filtered_value=filtered,
            quality=quality,
            substituted=substituted,
            captured_at=captured_at,
        )

    def overall_quality(self) -> float:
        return self.quality.overall()

    def clear_buffers(self, device_id: str | None = None) -> None:
        self.noise_filter.clear(device_id)

    def buffer_stats(self) -> dict[str, dict[str, int]]:
        return self.noise_filter.buffer_stats()

    def reset(self) -> None:
        self.noise_filter.clear()
        self.quality.reset()
        logger.info("data_processor.reset")
