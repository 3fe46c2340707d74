"""Tests for arousal scoring and the player status engine."""

from __future__ import annotations

import pytest

from biofeedback_engine.errors import ConfigurationError
from biofeedback_engine.events.bus import StateChanged, StateReset, StateUpdated
from biofeedback_engine.models import (
    AggregatedSnapshot,
    MotionVector,
    PlayerState,
    PlayerStatus,
    Trend,
)
from biofeedback_engine.state.engine import PlayerStatusEngine
from biofeedback_engine.state.scoring import (
    AnalysisParams,
    analyze_trend,
    available_metrics,
    calculate_arousal_score,
    calculate_confidence,
    calculate_consistency,
    determine_status,
    heart_rate_score,
    motion_score,
    status_band,
)

WEIGHTS = AnalysisParams().weights


def hr(value: float, **others) -> AggregatedSnapshot:
    return AggregatedSnapshot(heart_rate=value, **others)


# ── Scoring functions ────────────────────────────────────────


class TestArousalScore:
    @pytest.mark.parametrize(
        "bpm, expected",
        [(60, 0.0759), (70, 0.2227), (76, 0.3775), (80, 0.5), (84, 0.6225), (100, 0.9241), (180, 0.9241)],
    )
    def test_heart_rate_logistic(self, bpm, expected):
        assert heart_rate_score(bpm) == pytest.approx(expected, abs=1e-4)

    def test_empty_snapshot_scores_zero(self):
        assert calculate_arousal_score(AggregatedSnapshot(), WEIGHTS) == 0.0

    def test_weights_renormalized_over_present_metrics(self):
        assert calculate_arousal_score(AggregatedSnapshot(gsr=20), WEIGHTS) == pytest.approx(0.5266, abs=1e-4)
        combined = calculate_arousal_score(hr(80, gsr=50), WEIGHTS)
        assert combined == pytest.approx((0.5 * 0.4 + 1.0 * 0.3) / 0.7)

    def test_motion_and_eeg_use_magnitudes(self):
        assert motion_score(MotionVector(x=0, y=0, z=1)) == pytest.approx(1 / 3)
        assert motion_score(MotionVector(x=6, y=0, z=0)) == 1.0
        assert calculate_arousal_score(AggregatedSnapshot(eeg=-100), WEIGHTS) == pytest.approx(0.5)

    def test_zero_readings_are_not_available(self):
        snapshot = hr(90, gsr=0, eeg=0, motion=MotionVector(x=0, y=0, z=0))
        assert list(available_metrics(snapshot, WEIGHTS)) == ["heartRate"]
        assert calculate_arousal_score(snapshot, WEIGHTS) == pytest.approx(heart_rate_score(90))

    def test_temperature_and_battery_do_not_score(self):
        snapshot = AggregatedSnapshot(temperature=40, battery_level=5)
        assert calculate_arousal_score(snapshot, WEIGHTS) == 0.0

    @pytest.mark.parametrize("gsr", [None, 0, 15, 60])
    def test_monotonic_in_heart_rate(self, gsr):
        scores = [calculate_arousal_score(hr(b, gsr=gsr), WEIGHTS) for b in range(30, 221, 5)]
        assert all(later >= earlier for earlier, later in zip(scores, scores[1:]))


class TestStatusBands:
    @pytest.mark.parametrize(
        "score, status",
        [
            (0.0, PlayerStatus.RELAXED),
            (0.2999, PlayerStatus.RELAXED),
            (0.3, PlayerStatus.NORMAL),
            (0.4999, PlayerStatus.NORMAL),
            (0.5, PlayerStatus.FOCUSED),
            (0.7, PlayerStatus.ANXIOUS),
            (0.8, PlayerStatus.OVERSTIMULATED),
            (1.0, PlayerStatus.OVERSTIMULATED),
        ],
    )
    def test_bands(self, score, status):
        assert determine_status(score) is status

    def test_no_data_is_disconnected(self):
        assert determine_status(0.9, has_data=False) is PlayerStatus.DISCONNECTED

    @pytest.mark.parametrize(
        "status, band",
        [
            (PlayerStatus.RELAXED, (0.0, 0.3)),
            (PlayerStatus.FOCUSED, (0.5, 0.7)),
            (PlayerStatus.OVERSTIMULATED, (0.8, 1.0)),
        ],
    )
    def test_status_band(self, status, band):
        assert status_band(status) == band


class TestConfidence:
    def test_consistency(self):
        assert calculate_consistency([72.0]) == 0.5
        assert calculate_consistency([10.0, 10.0]) == pytest.approx(1.0)
        assert calculate_consistency([72.0, 10.0]) == pytest.approx(0.2439, abs=1e-4)
        assert calculate_consistency([100.0, 0.0]) == 0.0
        assert calculate_consistency([0.0, 0.0]) == 0.0

    def test_penalties_multiply(self):
        assert calculate_confidence(0.8, 1, PlayerStatus.OVERSTIMULATED, 0.5) == pytest.approx(0.252)
        assert calculate_confidence(0.8, 2, PlayerStatus.ANXIOUS, 1.0) == pytest.approx(0.72)
        assert calculate_confidence(0.8, 1, PlayerStatus.NORMAL, 0.5) == pytest.approx(0.28)

    def test_disconnected_has_no_confidence(self):
        assert calculate_confidence(1.0, 4, PlayerStatus.DISCONNECTED, 1.0) == 0.0


class TestTrend:
    def test_too_short_is_stable(self):
        assert analyze_trend([]) is Trend.STABLE
        assert analyze_trend([0.9]) is Trend.STABLE

    def test_direction(self):
        assert analyze_trend([0.1, 0.2, 0.3, 0.4]) is Trend.INCREASING
        assert analyze_trend([0.6, 0.5, 0.3, 0.2]) is Trend.DECREASING
        assert analyze_trend([0.5, 0.52, 0.51, 0.53]) is Trend.STABLE


# ── Status engine ────────────────────────────────────────────


class TestPlayerStatusEngine:
    @pytest.fixture
    def status_engine(self, bus) -> PlayerStatusEngine:
        return PlayerStatusEngine(bus)

    @pytest.fixture
    def changes(self, bus) -> list[StateChanged]:
        seen: list[StateChanged] = []
        bus.subscribe(StateChanged, seen.append)
        return seen

    def test_initial_state_is_disconnected(self, status_engine):
        state = status_engine.current_state()
        assert state.status is PlayerStatus.DISCONNECTED
        assert state.arousal_score == 0.0
        assert status_engine.published_state() is None

    def test_single_elevated_heart_rate(self, status_engine, clock):
        state = status_engine.update_state(hr(130), 0.8, clock(0))
        assert state.status is PlayerStatus.OVERSTIMULATED
        assert state.available_metrics == ["heartRate"]
        assert state.confidence == pytest.approx(0.252)
        assert state.last_update == clock(0)

    def test_empty_snapshot_stays_disconnected(self, status_engine, changes):
        state = status_engine.update_state(AggregatedSnapshot(), 0.0)
        assert state.status is PlayerStatus.DISCONNECTED
        assert state.confidence == 0.0
        assert changes == []

    def test_every_update_publishes_state_updated(self, status_engine, bus):
        updates: list[StateUpdated] = []
        bus.subscribe(StateUpdated, updates.append)
        for bpm in (70, 70.1, 70.2):
            status_engine.update_state(hr(bpm), 0.8)
        assert len(updates) == 3
        assert len(status_engine.history()) == 3

    def test_small_status_flips_are_damped(self, status_engine, changes):
        for bpm in (70, 76, 79.9):
            status_engine.update_state(hr(bpm), 0.8)
        assert [c.current.status for c in changes] == [
            PlayerStatus.RELAXED,
            PlayerStatus.NORMAL,
            PlayerStatus.NORMAL,
        ]
        assert changes[0].previous is None

        for bpm in (80.1, 79.9, 80.1):
            status_engine.update_state(hr(bpm), 0.8)
        assert len(changes) == 3
        assert status_engine.current_state().status is PlayerStatus.FOCUSED
        assert status_engine.published_state().status is PlayerStatus.NORMAL

        status_engine.update_state(hr(84), 0.8)
        assert len(changes) == 4
        assert changes[-1].previous.status is PlayerStatus.NORMAL
        assert changes[-1].current.status is PlayerStatus.FOCUSED

    def test_status_flip_needs_band_margin(self, status_engine, changes):
        status_engine.update_state(hr(79.9), 0.8)
        status_engine.update_state(hr(81), 0.8)
        assert [c.current.status for c in changes] == [PlayerStatus.NORMAL]

        status_engine.update_state(hr(82), 0.8)
        assert [c.current.status for c in changes] == [PlayerStatus.NORMAL, PlayerStatus.FOCUSED]

    def test_oscillation_around_band_edge_is_damped(self, status_engine, changes):
        status_engine.update_state(hr(79), 0.8)
        seen = []
        for bpm in (81, 79, 81, 79, 81):
            seen.append(status_engine.update_state(hr(bpm), 0.8).status)
        assert seen == [PlayerStatus.FOCUSED, PlayerStatus.NORMAL] * 2 + [PlayerStatus.FOCUSED]
        assert len(changes) == 1
        assert status_engine.published_state().status is PlayerStatus.NORMAL

    def test_losing_all_data_always_publishes(self, status_engine, changes):
        status_engine.update_state(hr(61), 0.8)
        status_engine.update_state(AggregatedSnapshot(), 0.0)
        assert changes[-1].current.status is PlayerStatus.DISCONNECTED

    def test_trend_uses_prior_history(self, status_engine):
        states = [status_engine.update_state(hr(b), 0.8) for b in range(60, 111, 5)]
        assert [s.trend for s in states[:3]] == [Trend.STABLE, Trend.STABLE, Trend.INCREASING]
        assert states[-1].trend is Trend.INCREASING

        analysis = status_engine.trend_analysis()
        assert analysis.trend is Trend.INCREASING
        assert analysis.confidence == pytest.approx(0.9)
        assert analysis.duration == 9

    def test_trend_analysis_needs_history(self, status_engine):
        for bpm in (60, 80, 100):
            status_engine.update_state(hr(bpm), 0.8)
        analysis = status_engine.trend_analysis()
        assert analysis.trend is Trend.STABLE
        assert analysis.confidence == 0.5
        assert analysis.duration == 0

    def test_history_is_bounded(self, bus):
        status_engine = PlayerStatusEngine(bus, AnalysisParams(history_length=3))
        for bpm in (60, 70, 80, 90):
            status_engine.update_state(hr(bpm), 0.8)
        history = status_engine.history()
        assert len(history) == 3
        assert history[0].metrics.heart_rate == 70
        assert status_engine.previous_state().metrics.heart_rate == 80

    def test_update_params(self, status_engine):
        for bpm in (60, 70, 80, 90, 100):
            status_engine.update_state(hr(bpm), 0.8)
        params = status_engine.update_params(history_length=2, gsr_weight=0.5)
        assert params.gsr_weight == 0.5
        assert len(status_engine.history()) == 2
        with pytest.raises(ConfigurationError):
            status_engine.update_params(history_length=0)
        with pytest.raises(ConfigurationError):
            status_engine.update_params(heart_rate_weight=-1)
        assert status_engine.params.history_length == 2

    def test_reset(self, status_engine, bus):
        resets: list[StateReset] = []
        bus.subscribe(StateReset, resets.append)
        status_engine.update_state(hr(90), 0.8)
        state = status_engine.reset()
        assert state.status is PlayerStatus.DISCONNECTED
        assert status_engine.history() == []
        assert status_engine.published_state() is None
        assert resets[0].state.status is PlayerStatus.DISCONNECTED

    def test_current_state_is_a_copy(self, status_engine):
        status_engine.update_state(hr(90), 0.8)
        status_engine.current_state().arousal_score = 0.0
        assert status_engine.current_state().arousal_score > 0.5


class TestStateDefinitions:
    def test_every_status_has_a_definition(self, bus):
        definitions = PlayerStatusEngine(bus).all_state_definitions()
        assert set(definitions) == set(PlayerStatus)
        assert definitions[PlayerStatus.ANXIOUS].label == "Anxious"
        assert definitions[PlayerStatus.OVERSTIMULATED].color == "#EF4444"

    def test_lookup_by_name_and_fallback(self, bus):
        status_engine = PlayerStatusEngine(bus)
        assert status_engine.state_definition("focused").arousal_level == 0.7
        assert status_engine.state_definition("bogus").status is PlayerStatus.DISCONNECTED

    def test_player_state_clamps_scores(self):
        state = PlayerState(arousal_score=1.7, confidence=float("nan"), data_quality=-0.2)
        assert (state.arousal_score, state.confidence, state.data_quality) == (1.0, 0.0, 0.0)
