"""Schema registry — valid range, unit, default and noise threshold per metric."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from biofeedback_engine.errors import ConfigurationError
from biofeedback_engine.models import (
    FilterStrategy,
    MetricSchema,
    MetricType,
    MetricValue,
    MotionVector,
    metric_key,
)

logger = structlog.get_logger(__name__)


def default_schemas() -> list[MetricSchema]:
    """Return the schemas for the six built-in metric types."""
    return [
        MetricSchema(
            metric_type=MetricType.HEART_RATE,
            unit="bpm",
            min_value=30,
            max_value=220,
            default_value=72,
            noise_threshold=5,
            filter_strategy=FilterStrategy.MEDIAN_OUTLIER,
        ),
        MetricSchema(
            metric_type=MetricType.GSR,
            unit="microsiemens",
            min_value=0,
            max_value=100,
            default_value=10,
            noise_threshold=2,
        ),
        MetricSchema(
            metric_type=MetricType.EEG,
            unit="microvolts",
            min_value=-500,
            max_value=500,
            default_value=0,
            noise_threshold=10,
        ),
        MetricSchema(
            metric_type=MetricType.MOTION,
            unit="g",
            min_value=-10,
            max_value=10,
            default_value=MotionVector(x=0, y=0, z=1),
            noise_threshold=0.1,
            vector=True,
            filter_strategy=FilterStrategy.VECTOR_MEAN,
        ),
        MetricSchema(
            metric_type=MetricType.TEMPERATURE,
            unit="celsius",
            min_value=20,
            max_value=45,
            default_value=37,
            noise_threshold=0.5,
        ),
        MetricSchema(
            metric_type=MetricType.BATTERY,
            unit="percentage",
            min_value=0,
            max_value=100,
            default_value=100,
            noise_threshold=1,
        ),
    ]


class SchemaRegistry:
    """Per-engine lookup of :class:`MetricSchema` by metric type.

    Schemas are immutable; registering a metric type again replaces its
    schema wholesale.
    """

    def __init__(self, schemas: list[MetricSchema] | None = None) -> None:
        self._schemas: dict[str, MetricSchema] = {}
        for schema in default_schemas() if schemas is None else schemas:
            self._schemas[schema.metric_type] = schema

    def __contains__(self, metric: object) -> bool:
        if not isinstance(metric, str):
            return False
        return metric_key(metric) in self._schemas

    def get(self, metric: MetricType | str) -> MetricSchema:
        """Return the schema for *metric*.

        Raises :class:`ConfigurationError` for unknown metric types.
        """
        schema = self._schemas.get(metric_key(metric))
        if schema is None:
            raise ConfigurationError(
                f"Unknown metric type: {metric_key(metric)}. "
                f"Available: {sorted(self._schemas)}"
            )
        return schema

    def register(self, schema: MetricSchema) -> MetricSchema:
        replaced = schema.metric_type in self._schemas
        self._schemas[schema.metric_type] = schema
        logger.info(
            "schema_registry.registered",
            metric=schema.metric_type,
            unit=schema.unit,
            replaced=replaced,
        )
        return schema

    def register_custom(self, metric: MetricType | str, **fields: Any) -> MetricSchema:
        """Build and register a schema, filling unspecified fields with defaults.

        Invalid declarations raise :class:`ConfigurationError`.
        """
        try:
            schema = MetricSchema(metric_type=metric, **fields)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid schema for {metric_key(metric)}: {exc}"
            ) from exc
        return self.register(schema)

    def known_metrics(self) -> list[str]:
        return list(self._schemas)

    def validate(self, metric: MetricType | str, value: MetricValue) -> bool:
        """Return ``True`` if *value* (every axis, for vectors) lies in range."""
        schema = self.get(metric)
        if isinstance(value, MotionVector):
            return schema.vector and all(schema.contains(a) for a in value.as_tuple())
        if schema.vector:
            return False
        return schema.contains(value)
