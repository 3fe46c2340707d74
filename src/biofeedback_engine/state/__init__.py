"""State classification sub-package — arousal scoring and the status engine."""

from biofeedback_engine.state.definitions import STATE_DEFINITIONS, get_state_definition
from biofeedback_engine.state.engine import PlayerStatusEngine
from biofeedback_engine.state.scoring import AnalysisParams

__all__ = [
    "STATE_DEFINITIONS",
    "AnalysisParams",
    "PlayerStatusEngine",
    "get_state_definition",
]
