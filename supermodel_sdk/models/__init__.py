"""Data models for the SuperModel SDK."""

from .conversation_types import GroundingChunk, Message, TurnRole
from .credentials import CustomProvider, ProviderCredentials
from .generation import (
    GenerationRequest,
    GenerationResult,
    StreamPart,
    TurnOutcome,
    TurnState,
    TurnWarning,
)
from .skill import ProviderFamily, ProviderKind, Skill, SkillSummary, SkillType

__all__ = [
    # Skills
    "Skill",
    "SkillSummary",
    "SkillType",
    "ProviderKind",
    "ProviderFamily",

    # Conversation models
    "Message",
    "TurnRole",
    "GroundingChunk",

    # Credentials
    "ProviderCredentials",
    "CustomProvider",

    # Generation models
    "GenerationRequest",
    "GenerationResult",
    "StreamPart",
    "TurnOutcome",
    "TurnState",
    "TurnWarning",
]
