"""Async ingestion pipeline connecting device drivers → engine.

Each attached device gets a bounded :class:`asyncio.Queue` and one consumer
task, so a slow or bursty stream never blocks the driver: when a queue is
full the oldest queued sample is dropped.  Samples for devices that are not
attached, or that were removed while queued, are dropped silently.
"""

from __future__ import annotations

import asyncio

import structlog

from biofeedback_engine.engine import BiofeedbackEngine
from biofeedback_engine.errors import UnknownDeviceError
from biofeedback_engine.events.bus import DeviceRemoved
from biofeedback_engine.models import RawSample

logger = structlog.get_logger(__name__)


class IngestionPipeline:
    """Per-device async handoff in front of :meth:`BiofeedbackEngine.ingest`.

    Removal of a device through the engine detaches it automatically.
    """

    def __init__(self, engine: BiofeedbackEngine, maxsize: int | None = None) -> None:
        self._engine = engine
        self._maxsize = maxsize or engine.settings.pipeline_queue_size
        self._queues: dict[str, asyncio.Queue[RawSample]] = {}
        self._workers: dict[str, asyncio.Task[None]] = {}
        self._running = False
        self.processed_total = 0
        self.dropped_total = 0
        self._unsubscribe = engine.subscribe(DeviceRemoved, self._on_device_removed)

    # ── Configuration ─────────────────────────────────────────

    def attach(self, device_id: str) -> None:
        """Create the queue (and, once started, the worker) for *device_id*."""
        if device_id in self._queues:
            return
        self._queues[device_id] = asyncio.Queue(maxsize=self._maxsize)
        if self._running:
            self._spawn(device_id)
        logger.info("ingestion_pipeline.attached", device_id=device_id)

    def detach(self, device_id: str) -> int:
        """Stop consuming for *device_id*; return the number of samples dropped."""
        queue = self._queues.pop(device_id, None)
        worker = self._workers.pop(device_id, None)
        if worker is not None:
            worker.cancel()
        if queue is None:
            return 0

        dropped = 0
        while not queue.empty():
            queue.get_nowait()
            queue.task_done()
            dropped += 1
        self.dropped_total += dropped
        logger.info("ingestion_pipeline.detached", device_id=device_id, dropped=dropped)
        return dropped

    # ── Producer side ─────────────────────────────────────────

    def publish(self, sample: RawSample) -> bool:
        """Enqueue *sample* without blocking. Return ``False`` if dropped."""
        queue = self._queues.get(sample.device_id)
        if queue is None:
            self.dropped_total += 1
            logger.debug("ingestion_pipeline.unattached_drop", device_id=sample.device_id)
            return False
        if queue.full():
            queue.get_nowait()
            queue.task_done()
            self.dropped_total += 1
            logger.debug("ingestion_pipeline.overflow_drop", device_id=sample.device_id)
        queue.put_nowait(sample)
        return True

    def publish_batch(self, samples: list[RawSample]) -> int:
        return sum(self.publish(s) for s in samples)

    # ── Consumer loops ────────────────────────────────────────

    async def start(self) -> None:
        """Spawn one worker per attached device."""
        self._running = True
        for device_id in self._queues:
            if device_id not in self._workers:
                self._spawn(device_id)
        logger.info("ingestion_pipeline.started", devices=len(self._queues))

    async def stop(self) -> None:
        """Cancel all workers; queued samples stay queued until detached."""
        self._running = False
        workers = list(self._workers.values())
        self._workers.clear()
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        logger.info("ingestion_pipeline.stopped", processed_total=self.processed_total)

    async def join(self) -> None:
        """Wait until every queued sample has been consumed."""
        await asyncio.gather(*(q.join() for q in list(self._queues.values())))

    def close(self) -> None:
        self._unsubscribe()

    def _spawn(self, device_id: str) -> None:
        self._workers[device_id] = asyncio.create_task(
            self._consume(device_id, self._queues[device_id]),
            name=f"ingest-{device_id}",
        )

    async def _consume(self, device_id: str, queue: asyncio.Queue[RawSample]) -> None:
        while True:
            sample = await queue.get()
            try:
                result = self._engine.ingest(
                    sample.device_id, sample.metric_type, sample.raw_value, sample.captured_at
                )
                if result is None:
                    self.dropped_total += 1
                else:
                    self.processed_total += 1
            except UnknownDeviceError:
                self.dropped_total += 1
                logger.debug("ingestion_pipeline.removed_device_drop", device_id=device_id)
            except Exception as exc:
                logger.error(
                    "ingestion_pipeline.ingest_error",
                    device_id=device_id,
                    metric=sample.metric_type,
                    error=str(exc),
                )
            finally:
                queue.task_done()

    def _on_device_removed(self, event: DeviceRemoved) -> None:
        self.detach(event.device.id)

    @property
    def pending(self) -> int:
        return sum(q.qsize() for q in self._queues.values())

    def pending_for(self, device_id: str) -> int:
        queue = self._queues.get(device_id)
        return queue.qsize() if queue is not None else 0
