"""Turn orchestration: state machine and streaming orchestrator."""

from .errors import InvalidTransitionError, OrchestratorError, TurnInProgressError
from .orchestrator import ActiveTurn, StreamingOrchestrator
from .state import TRANSITIONS, TurnStateMachine

__all__ = [
    "StreamingOrchestrator",
    "ActiveTurn",
    "TurnStateMachine",
    "TRANSITIONS",
    "OrchestratorError",
    "TurnInProgressError",
    "InvalidTransitionError",
]
