"""Centralised engine settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """All runtime configuration for the biofeedback engine.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in the flat
    ``BIOFEEDBACK_`` namespace (stripped automatically by *pydantic-settings*),
    e.g. ``BIOFEEDBACK_FILTER_BUFFER_SIZE=20``.
    """

    model_config = SettingsConfigDict(
        env_prefix="BIOFEEDBACK_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ── Noise filter ──────────────────────────────────────────
    filter_buffer_size: int = 10  # samples kept per (device, metric)

    # ── Data quality ──────────────────────────────────────────
    quality_base: float = 0.8
    quality_smoothing: float = 0.7  # weight of the previous quality
    quality_lag_ms: int = 1000
    quality_lag_factor: float = 0.8
    quality_stale_ms: int = 5000
    quality_stale_factor: float = 0.5
    quality_extremity_margin: float = 0.1  # outer share of the valid range
    quality_extremity_factor: float = 0.7

    # ── State classification ──────────────────────────────────
    heart_rate_weight: float = 0.4
    gsr_weight: float = 0.3
    motion_weight: float = 0.2
    eeg_weight: float = 0.1
    state_history_length: int = 50
    trend_window: int = 10
    trend_threshold: float = 0.05
    state_change_threshold: float = 0.1  # score move that always re-publishes
    state_change_band_margin: float = 0.05  # distance past a band edge a status flip must reach

    # ── Ingestion pipeline ────────────────────────────────────
    pipeline_queue_size: int = 100  # per device


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
