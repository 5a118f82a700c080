from typing import Dict, FrozenSet, List

from ..models.generation import TurnState
from .errors import InvalidTransitionError


TRANSITIONS: Dict[TurnState, FrozenSet[TurnState]] = {
    TurnState.IDLE: frozenset({TurnState.PREPROCESSING, TurnState.ERRORED}),
    TurnState.PREPROCESSING: frozenset({TurnState.STREAMING, TurnState.ERRORED}),
    TurnState.STREAMING: frozenset({TurnState.POSTPROCESSING, TurnState.CANCELLED, TurnState.ERRORED}),
    TurnState.POSTPROCESSING: frozenset({TurnState.DONE, TurnState.ERRORED}),
    TurnState.DONE: frozenset(),
    TurnState.CANCELLED: frozenset(),
    TurnState.ERRORED: frozenset(),
}


class TurnStateMachine:
    """Tracks one turn's lifecycle and rejects illegal transitions."""

    def __init__(self):
        self.state = TurnState.IDLE
        self.history: List[TurnState] = [TurnState.IDLE]

    def can_transition(self, target: TurnState) -> bool:
        return target in TRANSITIONS[self.state]

    def transition(self, target: TurnState) -> None:
        if not self.can_transition(target):
            raise InvalidTransitionError(self.state.value, target.value)
        self.state = target
        self.history.append(target)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal
