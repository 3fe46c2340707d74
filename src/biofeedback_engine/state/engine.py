"""Player status engine — classify aggregated telemetry into a player state.

Every aggregation update produces a new :class:`PlayerState`; status is a
pure function of the current arousal score, so any status can follow any
other.  Publication is damped: ``StateChanged`` fires only when the score
moved more than ``state_change_threshold`` since the last published state,
or when the status flipped and the score went more than
``state_change_band_margin`` past the edge of the new band (always, when
entering or leaving ``disconnected``).  ``StateUpdated`` fires on every
recomputation.
"""

from __future__ import annotations

from collections import Counter, deque
from datetime import datetime
from typing import Any

import structlog
from pydantic import ValidationError

from biofeedback_engine.errors import ConfigurationError
from biofeedback_engine.events.bus import EventBus, StateChanged, StateReset, StateUpdated
from biofeedback_engine.models import (
    AggregatedSnapshot,
    PlayerState,
    PlayerStatus,
    StateDefinition,
    TrendAnalysis,
    utcnow,
)
from biofeedback_engine.state.definitions import STATE_DEFINITIONS, get_state_definition
from biofeedback_engine.state.scoring import (
    AnalysisParams,
    analyze_trend,
    available_metrics,
    calculate_arousal_score,
    calculate_confidence,
    calculate_consistency,
    determine_status,
    status_band,
)

logger = structlog.get_logger(__name__)

_MIN_TREND_ANALYSIS_HISTORY = 5
_TREND_ANALYSIS_WINDOW = 10


class PlayerStatusEngine:
    """Stateful classifier with a bounded history for trend analysis.

    Not thread-safe on its own; the owning engine serializes calls so the
    history stays totally ordered.
    """

    def __init__(self, bus: EventBus, params: AnalysisParams | None = None) -> None:
        self._bus = bus
        self.params = params or AnalysisParams()
        self._current = PlayerState()
        self._published: PlayerState | None = None
        self._history: deque[PlayerState] = deque(maxlen=self.params.history_length)

    # ── Classification ────────────────────────────────────────

    def update_state(
        self,
        snapshot: AggregatedSnapshot,
        data_quality: float,
        timestamp: datetime | None = None,
    ) -> PlayerState:
        """Recompute the player state from *snapshot* and publish events."""
        weights = self.params.weights
        present = available_metrics(snapshot, weights)

        if present:
            score = calculate_arousal_score(snapshot, weights)
            status = determine_status(score)
            consistency = calculate_consistency(list(present.values()))
            confidence = calculate_confidence(data_quality, len(present), status, consistency)
        else:
            score, status, confidence = 0.0, PlayerStatus.DISCONNECTED, 0.0

        recent = list(self._history)[-self.params.trend_window:]
        trend = analyze_trend([s.arousal_score for s in recent], self.params.trend_threshold)

        state = PlayerState(
            status=status,
            arousal_score=score,
            confidence=confidence,
            data_quality=data_quality,
            metrics=snapshot,
            available_metrics=sorted(present),
            trend=trend,
            last_update=timestamp or utcnow(),
        )

        changed = self._is_significant_change(state)
        previous = self._published
        self._current = state
        self._history.append(state)

        if changed:
            self._published = state
            logger.info(
                "player_status.changed",
                status=state.status.value,
                previous=previous.status.value if previous else None,
                arousal=round(state.arousal_score, 3),
                confidence=round(state.confidence, 3),
            )
            self._bus.publish(StateChanged(previous=previous, current=state))
        self._bus.publish(StateUpdated(state=state))
        return state

    def _is_significant_change(self, state: PlayerState) -> bool:
        reference = self._published or PlayerState()
        delta = abs(state.arousal_score - reference.arousal_score)
        if delta > self.params.state_change_threshold:
            return True
        if state.status is reference.status:
            return False
        if PlayerStatus.DISCONNECTED in (state.status, reference.status):
            return True
        lower, upper = status_band(state.status)
        if state.arousal_score > reference.arousal_score:
            past_edge = state.arousal_score - lower
        else:
            past_edge = upper - state.arousal_score
        return past_edge > self.params.state_change_band_margin

    # ── Queries ───────────────────────────────────────────────

    def current_state(self) -> PlayerState:
        return self._current.model_copy()

    def published_state(self) -> PlayerState | None:
        return self._published

    def previous_state(self) -> PlayerState:
        """The state before the current one (the current one if none)."""
        if len(self._history) > 1:
            return self._history[-2]
        return self._current

    def history(self) -> list[PlayerState]:
        return list(self._history)

    def state_definition(self, status: PlayerStatus | str) -> StateDefinition:
        return get_state_definition(status)

    def all_state_definitions(self) -> dict[PlayerStatus, StateDefinition]:
        return dict(STATE_DEFINITIONS)

    def trend_analysis(self) -> TrendAnalysis:
        """Dominant trend across the last ten states and how long it has held."""
        if len(self._history) < _MIN_TREND_ANALYSIS_HISTORY:
            return TrendAnalysis()

        trends = [s.trend for s in list(self._history)[-_TREND_ANALYSIS_WINDOW:]]
        dominant, count = Counter(trends).most_common(1)[0]

        duration = 0
        for state in reversed(self._history):
            if state.trend is not dominant:
                break
            duration += 1

        return TrendAnalysis(trend=dominant, confidence=count / len(trends), duration=duration)

    # ── Maintenance ───────────────────────────────────────────

    def update_params(self, **changes: Any) -> AnalysisParams:
        """Apply validated parameter changes; invalid values raise ConfigurationError."""
        try:
            params = AnalysisParams.model_validate({**self.params.model_dump(), **changes})
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid analysis parameters: {exc}") from exc
        if params.history_length != self.params.history_length:
            self._history = deque(self._history, maxlen=params.history_length)
        self.params = params
        logger.info("player_status.params_updated", changes=sorted(changes))
        return params

    def reset(self) -> PlayerState:
        self._current = PlayerState()
        self._published = None
        self._history.clear()
        logger.info("player_status.reset")
        self._bus.publish(StateReset(state=self._current))
        return self._current
