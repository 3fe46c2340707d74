"""Static display and nominal values for each player status."""

from __future__ import annotations

from biofeedback_engine.models import PlayerStatus, StateDefinition

STATE_DEFINITIONS: dict[PlayerStatus, StateDefinition] = {
    PlayerStatus.DISCONNECTED: StateDefinition(
        status=PlayerStatus.DISCONNECTED,
        label="Disconnected",
        color="#6B7280",
        description="No devices connected",
        arousal_level=0.0,
        confidence=0.0,
    ),
    PlayerStatus.RELAXED: StateDefinition(
        status=PlayerStatus.RELAXED,
        label="Relaxed",
        color="#10B981",
        description="Low arousal, calm state",
        arousal_level=0.2,
        confidence=0.8,
    ),
    PlayerStatus.NORMAL: StateDefinition(
        status=PlayerStatus.NORMAL,
        label="Normal",
        color="#3B82F6",
        description="Baseline physiological state",
        arousal_level=0.5,
        confidence=0.9,
    ),
    PlayerStatus.FOCUSED: StateDefinition(
        status=PlayerStatus.FOCUSED,
        label="Focused",
        color="#8B5CF6",
        description="Moderate arousal, engaged",
        arousal_level=0.7,
        confidence=0.85,
    ),
    PlayerStatus.ANXIOUS: StateDefinition(
        status=PlayerStatus.ANXIOUS,
        label="Anxious",
        color="#F59E0B",
        description="High arousal, stress response",
        arousal_level=0.8,
        confidence=0.75,
    ),
    PlayerStatus.OVERSTIMULATED: StateDefinition(
        status=PlayerStatus.OVERSTIMULATED,
        label="Overstimulated",
        color="#EF4444",
        description="Very high arousal, may need break",
        arousal_level=0.95,
        confidence=0.7,
    ),
}


def get_state_definition(status: PlayerStatus | str) -> StateDefinition:
    """Return the definition for *status*; unknown values map to disconnected."""
    try:
        return STATE_DEFINITIONS[PlayerStatus(status)]
    except ValueError:
        return STATE_DEFINITIONS[PlayerStatus.DISCONNECTED]
