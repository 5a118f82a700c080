from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.cancellation import CancellationToken
from .conversation_types import GroundingChunk, Message
from .skill import Skill


class TurnState(str, Enum):
    """Lifecycle of a single generation turn."""
    IDLE = "idle"
    PREPROCESSING = "preprocessing"
    STREAMING = "streaming"
    POSTPROCESSING = "postprocessing"
    DONE = "done"
    CANCELLED = "cancelled"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (TurnState.DONE, TurnState.CANCELLED, TurnState.ERRORED)


class StreamPart(BaseModel):
    """Unit yielded by every provider adapter: a text chunk and/or grounding."""
    chunk: Optional[str] = None
    grounding_chunks: Optional[List[GroundingChunk]] = None


class TurnWarning(BaseModel):
    """Non-fatal problem recorded on a completed turn."""
    phase: str
    message: str


@dataclass
class GenerationRequest:
    """
    Everything the orchestrator needs for one send/regenerate action.

    ``history`` is the conversation's live list: its last element is the new
    user input, and the orchestrator appends its assistant placeholder to it.
    """
    primary_skill: Skill
    history: List[Message]
    token: CancellationToken = field(default_factory=CancellationToken)
    active_skills: List[Skill] = field(default_factory=list)
    conversation_id: Optional[str] = None

    def __post_init__(self):
        if not self.active_skills:
            self.active_skills = [self.primary_skill]

    @property
    def user_message(self) -> Optional[Message]:
        return self.history[-1] if self.history else None


class GenerationResult(BaseModel):
    """Final output of a completed turn."""
    text: str
    grounding_chunks: Optional[List[GroundingChunk]] = None
    tokens_in: int = Field(0, ge=0)
    tokens_out: int = Field(0, ge=0)
    cost: float = Field(0.0, ge=0.0)


class TurnOutcome(BaseModel):
    """
    Terminal summary of a turn.

    ``message`` is the assistant message as rendered in the conversation: the
    final text when Done, the truncated partial text when Cancelled, and
    ``"Error: ..."`` when Errored.
    """
    state: TurnState
    message: Optional[Message] = None
    result: Optional[GenerationResult] = None
    warnings: List[TurnWarning] = Field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.state == TurnState.DONE
