"""Orchestration-specific error definitions."""

from ..errors import SupermodelError


class OrchestratorError(SupermodelError):
    """Base exception for orchestration errors."""
    pass


class TurnInProgressError(OrchestratorError):
    """A turn was started while another one is still in flight."""

    def __init__(self, active_turn_id: str):
        self.active_turn_id = active_turn_id
        super().__init__(
            f"Turn '{active_turn_id}' is still in progress; stop it before starting a new one"
        )


class InvalidTransitionError(OrchestratorError):
    """Exception raised for a transition the turn state machine does not allow."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Invalid turn transition: {current} -> {requested}")
