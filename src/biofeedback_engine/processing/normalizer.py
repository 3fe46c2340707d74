"""Sample normalizer — raw driver values to schema-validated canonical values.

Malformed or out-of-range input never fails the ingestion path: the parser
raises :class:`DataError` internally and the schema default is substituted.
Only an unknown metric type (a configuration problem) reaches the caller.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from biofeedback_engine.errors import DataError
from biofeedback_engine.models import MetricSchema, MetricType, MetricValue, MotionVector, clamp
from biofeedback_engine.processing.schemas import SchemaRegistry

logger = structlog.get_logger(__name__)


def parse_scalar(metric: str, raw: Any) -> float:
    """Parse *raw* as a finite float or raise :class:`DataError`."""
    if isinstance(raw, bool) or raw is None:
        raise DataError(metric, raw, "not a number")
    if isinstance(raw, str):
        raw = raw.strip()
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError) as exc:
        raise DataError(metric, raw, "not a number") from exc
    if not math.isfinite(value):
        raise DataError(metric, raw, "not finite")
    return value


def _raw_axes(raw: Any) -> tuple[Any, Any, Any] | None:
    """Extract x/y/z from the accepted vector shapes, or ``None`` for scalars."""
    if isinstance(raw, MotionVector):
        return raw.as_tuple()
    if isinstance(raw, Mapping):
        if "x" not in raw:
            raise DataError(MetricType.MOTION.value, raw, "mapping without x axis")
        return raw.get("x"), raw.get("y"), raw.get("z")
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) != 3:
            raise DataError(MetricType.MOTION.value, raw, "expected three axes")
        return raw[0], raw[1], raw[2]
    if all(hasattr(raw, axis) for axis in ("x", "y", "z")):
        return raw.x, raw.y, raw.z
    return None


class SampleNormalizer:
    """Convert raw readings into canonical values using a :class:`SchemaRegistry`."""

    def __init__(self, schemas: SchemaRegistry) -> None:
        self._schemas = schemas

    def normalize(self, metric: MetricType | str, raw: Any) -> MetricValue:
        value, _ = self.normalize_with_status(metric, raw)
        return value

    def normalize_with_status(
        self, metric: MetricType | str, raw: Any
    ) -> tuple[MetricValue, bool]:
        """Return ``(value, substituted)``.

        *substituted* is ``True`` when the schema default replaced the raw
        value.  Raises :class:`ConfigurationError` for unknown metrics.
        """
        schema = self._schemas.get(metric)
        try:
            if schema.vector:
                return self._normalize_vector(schema, raw)
            return self._normalize_scalar(schema, raw), False
        except DataError as exc:
            logger.debug(
                "normalizer.default_substituted",
                metric=schema.metric_type,
                reason=exc.reason,
            )
            return schema.default_value, True

    # ── Internals ─────────────────────────────────────────────

    @staticmethod
    def _normalize_scalar(schema: MetricSchema, raw: Any) -> float:
        value = parse_scalar(schema.metric_type, raw)
        if not schema.contains(value):
            raise DataError(schema.metric_type, raw, "out of range")
        return value

    @staticmethod
    def _normalize_vector(schema: MetricSchema, raw: Any) -> tuple[MotionVector, bool]:
        """Clamp each axis into range; a scalar becomes ``(value, 0, 1)``."""
        default: MotionVector = schema.default_value  # type: ignore[assignment]
        lo, hi = schema.min_value, schema.max_value
        axes = _raw_axes(raw)

        if axes is None:
            x = parse_scalar(schema.metric_type, raw)
            return MotionVector(
                x=clamp(x, lo, hi), y=clamp(0.0, lo, hi), z=clamp(1.0, lo, hi)
            ), False

        substituted = False
        clean: list[float] = []
        for raw_axis, fallback in zip(axes, default.as_tuple()):
            try:
                clean.append(clamp(parse_scalar(schema.metric_type, raw_axis), lo, hi))
            except DataError:
                clean.append(fallback)
                substituted = True
        return MotionVector(x=clean[0], y=clean[1], z=clean[2]), substituted
