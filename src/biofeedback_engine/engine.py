"""Biofeedback engine — explicitly constructed composition root.

Wires the processing chain, device registry, aggregator, status engine and
event bus together and exposes the in-process API used by the driver layer
(``on_raw_sample``, ``connect``, ``disconnect``) and by consumers (queries
and subscriptions).

All mutation runs under one re-entrant lock: samples from concurrent device
streams are ingested one at a time, state recomputations never interleave,
and a disconnect takes effect atomically relative to any in-flight sample.
Subscribers are called while the lock is held and may query the engine.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable

import structlog

from biofeedback_engine.config import Settings, get_settings
from biofeedback_engine.devices.adapters import AdapterRegistry
from biofeedback_engine.devices.aggregator import Aggregator
from biofeedback_engine.devices.base import DeviceAdapter
from biofeedback_engine.devices.registry import DeviceRegistry
from biofeedback_engine.errors import UnknownDeviceError
from biofeedback_engine.events.bus import DataProcessed, Event, EventBus
from biofeedback_engine.models import (
    AggregatedSnapshot,
    Device,
    MetricSchema,
    MetricType,
    NormalizedSample,
    PlayerState,
    PlayerStatus,
    StateDefinition,
    TrendAnalysis,
    metric_key,
    utcnow,
)
from biofeedback_engine.processing.processor import DataProcessor
from biofeedback_engine.processing.schemas import SchemaRegistry
from biofeedback_engine.state.engine import PlayerStatusEngine
from biofeedback_engine.state.scoring import AnalysisParams

logger = structlog.get_logger(__name__)


class BiofeedbackEngine:
    """Telemetry normalization, aggregation and player-state classification.

    Instances share nothing: build one per player (or per test).
    """

    def __init__(self, settings: Settings | None = None, *, bus: EventBus | None = None) -> None:
        self.settings = settings or get_settings()
        self.bus = bus or EventBus()
        self.schemas = SchemaRegistry()
        self.processor = DataProcessor(self.settings, self.schemas)
        self.adapters = AdapterRegistry(self.schemas)
        self.devices = DeviceRegistry(self.adapters, self.bus)
        self.aggregator = Aggregator()
        self.status_engine = PlayerStatusEngine(self.bus, AnalysisParams.from_settings(self.settings))
        self._lock = threading.RLock()

    # ── Registration ──────────────────────────────────────────

    def register_schema(self, schema: MetricSchema) -> MetricSchema:
        with self._lock:
            return self.schemas.register(schema)

    def register_custom_metric(self, metric: str, **fields: Any) -> MetricSchema:
        with self._lock:
            return self.schemas.register_custom(metric, **fields)

    def register_adapter(self, adapter: DeviceAdapter) -> DeviceAdapter:
        with self._lock:
            return self.adapters.register(adapter)

    def register_device(self, device_type: str, info: dict[str, Any] | None = None) -> Device:
        with self._lock:
            return self.devices.register(device_type, info)

    # ── Lifecycle ─────────────────────────────────────────────

    def connect(self, device_id: str) -> Device:
        with self._lock:
            return self.devices.connect(device_id)

    def disconnect(self, device_id: str) -> Device:
        with self._lock:
            return self.devices.disconnect(device_id)

    def remove_device(self, device_id: str) -> Device:
        """Forget *device_id*; its buffers go, shared quality decays on its own."""
        with self._lock:
            device = self.devices.remove(device_id)
            self.processor.clear_buffers(device_id)
            return device

    # ── Ingestion ─────────────────────────────────────────────

    def ingest(
        self,
        device_id: str,
        metric: MetricType | str,
        raw_value: Any,
        timestamp: datetime | None = None,
    ) -> NormalizedSample | None:
        """Process one raw sample and reclassify.

        Returns ``None`` when the sample is dropped: the device is
        disconnected or does not declare *metric*.  Raises
        :class:`UnknownDeviceError` for unregistered devices.
        """
        key = metric_key(metric)
        with self._lock:
            device = self._require(device_id)
            if not device.connected:
                logger.debug("engine.sample_dropped", device_id=device_id, metric=key, reason="disconnected")
                return None
            if key not in device.capabilities:
                logger.debug("engine.sample_dropped", device_id=device_id, metric=key, reason="capability")
                return None

            sample = self.processor.process(device_id, key, raw_value, timestamp)
            self.devices.record_quality(device_id, key, sample.quality, sample.captured_at)
            snapshot = self.aggregator.update(key, sample.filtered_value, sample.captured_at)

            self.bus.publish(DataProcessed(sample=sample))
            self.status_engine.update_state(
                snapshot, self.processor.overall_quality(), sample.captured_at
            )
            return sample

    def on_raw_sample(
        self,
        device_id: str,
        channel: str,
        raw_value: Any,
        timestamp: datetime | None = None,
    ) -> NormalizedSample | None:
        """Driver callback: resolve *channel* through the device's adapter, then ingest."""
        with self._lock:
            device = self._require(device_id)
            metric = self.devices.adapter_for(device).resolve_metric(channel)
            return self.ingest(device_id, metric, raw_value, timestamp)

    def _require(self, device_id: str) -> Device:
        device = self.devices.peek(device_id)
        if device is None:
            raise UnknownDeviceError(device_id)
        return device

    # ── Queries ───────────────────────────────────────────────

    def get_current_state(self) -> PlayerState:
        with self._lock:
            return self.status_engine.current_state()

    def get_state_history(self) -> list[PlayerState]:
        with self._lock:
            return self.status_engine.history()

    def get_trend_analysis(self) -> TrendAnalysis:
        with self._lock:
            return self.status_engine.trend_analysis()

    def get_state_definition(self, status: PlayerStatus | str) -> StateDefinition:
        return self.status_engine.state_definition(status)

    def get_device(self, device_id: str) -> Device:
        with self._lock:
            return self.devices.get(device_id)

    def get_devices(self) -> list[Device]:
        with self._lock:
            return self.devices.devices()

    def get_connected_devices(self) -> list[Device]:
        with self._lock:
            return self.devices.connected()

    def get_aggregated_snapshot(self) -> AggregatedSnapshot:
        with self._lock:
            return self.aggregator.snapshot()

    def get_overall_data_quality(self) -> float:
        with self._lock:
            return self.processor.overall_quality()

    def get_metric_quality(self, metric: MetricType | str, now: datetime | None = None) -> float:
        """Quality of *metric* as of *now*, including the staleness discount."""
        with self._lock:
            now = now or utcnow()
            if now.tzinfo is None:
                now = now.replace(tzinfo=timezone.utc)
            return self.processor.quality.effective_quality(metric, now)

    def get_available_adapters(self) -> list[dict[str, Any]]:
        with self._lock:
            return self.adapters.describe()

    # ── Events ────────────────────────────────────────────────

    def subscribe(self, event: type[Event] | str, handler: Callable[[Any], None]) -> Callable[[], bool]:
        return self.bus.subscribe(event, handler)

    def unsubscribe(self, event: type[Event] | str, handler: Callable[[Any], None]) -> bool:
        return self.bus.unsubscribe(event, handler)

    # ── Maintenance ───────────────────────────────────────────

    def update_analysis_params(self, **changes: Any) -> AnalysisParams:
        with self._lock:
            return self.status_engine.update_params(**changes)

    def reset(self) -> None:
        """Clear buffers, quality, the snapshot and the state history."""
        with self._lock:
            self.processor.reset()
            self.aggregator.reset()
            self.status_engine.reset()
