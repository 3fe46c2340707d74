"""Tests for the structlog setup."""

from __future__ import annotations

import io
import json

import pytest
import structlog

from biofeedback_engine.logger import setup_logging


@pytest.fixture(autouse=True)
def _restore_structlog():
    yield
    structlog.reset_defaults()


def test_json_lines_with_level_filter():
    out = io.StringIO()
    setup_logging("WARNING", json=True, stream=out)
    log = structlog.get_logger("tests.logging")

    log.info("player_status.changed", status="focused")
    log.warning("engine.sample_dropped", device_id="d1", reason="disconnected")

    lines = out.getvalue().splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["event"] == "engine.sample_dropped"
    assert record["level"] == "warning"
    assert record["device_id"] == "d1"
    assert "timestamp" in record


def test_level_defaults_to_settings(monkeypatch):
    from biofeedback_engine.config import get_settings

    monkeypatch.setenv("BIOFEEDBACK_LOG_LEVEL", "DEBUG")
    get_settings.cache_clear()
    try:
        out = io.StringIO()
        setup_logging(json=True, stream=out)
        structlog.get_logger("tests.logging").debug("normalizer.default_substituted")
        assert json.loads(out.getvalue())["level"] == "debug"
    finally:
        get_settings.cache_clear()


def test_subscriber_error_is_logged_with_event_name(monkeypatch):
    from biofeedback_engine.events import bus as bus_module
    from biofeedback_engine.events.bus import EventBus, StateUpdated
    from biofeedback_engine.models import PlayerState

    out = io.StringIO()
    setup_logging("ERROR", json=True, stream=out)
    monkeypatch.setattr(bus_module, "logger", structlog.get_logger(bus_module.__name__))

    def broken(_):
        raise RuntimeError("boom")

    bus = EventBus()
    bus.subscribe(StateUpdated, broken)
    result = bus.publish(StateUpdated(state=PlayerState()))

    assert len(result.failed) == 1
    record = json.loads(out.getvalue().splitlines()[0])
    assert record["event"] == "event_bus.subscriber_error"
    assert record["event_name"] == "stateUpdated"
    assert "broken" in record["subscriber"]
    assert "RuntimeError: boom" in record["exception"]
