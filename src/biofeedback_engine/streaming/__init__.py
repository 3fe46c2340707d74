"""Streaming sub-package — async handoff from device drivers to the engine."""

from biofeedback_engine.streaming.pipeline import IngestionPipeline

__all__ = ["IngestionPipeline"]
