"""Event models for streaming turns.

This module defines the event types delivered to turn subscribers.
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
import time

from .conversation_types import GroundingChunk


@dataclass
class StreamEvent:
    """Base class for all streaming events."""
    type: str = ""  # Will be set by subclasses
    provider: Optional[str] = None
    model: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation used by the HTTP layer."""
        return {"type": self.type}


@dataclass
class StreamStartEvent(StreamEvent):
    """Event emitted when the assistant placeholder is created."""
    type: str = field(default="start", init=False)
    skill_id: Optional[str] = None
    skills_used: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.type = "start"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "skill_id": self.skill_id, "skills_used": self.skills_used}


@dataclass
class StreamDeltaEvent(StreamEvent):
    """Event emitted for each text chunk."""
    type: str = field(default="delta", init=False)
    chunk: str = ""
    chunk_index: int = 0

    def __post_init__(self):
        self.type = "delta"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "chunk": self.chunk, "index": self.chunk_index}


@dataclass
class StreamGroundingEvent(StreamEvent):
    """Event emitted once when search grounding sources are available."""
    type: str = field(default="grounding", init=False)
    grounding_chunks: List[GroundingChunk] = field(default_factory=list)

    def __post_init__(self):
        self.type = "grounding"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "grounding_chunks": [c.model_dump() for c in self.grounding_chunks],
        }


@dataclass
class StreamWarningEvent(StreamEvent):
    """Event emitted for non-fatal problems (e.g. postprocessing failure)."""
    type: str = field(default="warning", init=False)
    phase: str = ""
    message: str = ""

    def __post_init__(self):
        self.type = "warning"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "phase": self.phase, "message": self.message}


@dataclass
class StreamCompleteEvent(StreamEvent):
    """Event emitted when a turn reaches Done."""
    type: str = field(default="complete", init=False)
    text: str = ""
    total_chunks: int = 0
    duration_ms: float = 0.0
    tokens_in: int = 0
    tokens_out: int = 0
    cost: float = 0.0

    def __post_init__(self):
        self.type = "complete"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "text": self.text,
            "tokens_in": self.tokens_in,
            "tokens_out": self.tokens_out,
            "cost": self.cost,
        }


@dataclass
class StreamCancelledEvent(StreamEvent):
    """Event emitted when a turn stops on cancellation."""
    type: str = field(default="cancelled", init=False)
    partial_text: str = ""
    reason: Optional[str] = None

    def __post_init__(self):
        self.type = "cancelled"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "partial_text": self.partial_text}


@dataclass
class StreamErrorEvent(StreamEvent):
    """Event emitted when a turn ends Errored."""
    error: Optional[Exception] = None
    type: str = field(default="error", init=False)
    error_type: str = ""
    message: str = ""

    def __post_init__(self):
        self.type = "error"
        if not self.error_type and self.error:
            self.error_type = type(self.error).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "error_type": self.error_type, "message": self.message}
