"""
SuperModel SDK - skill-pack generation pipeline over multiple LLM providers.

This package resolves a skill for each conversation turn and streams the
answer from the skill's provider:
- Google Gemini (optionally search-grounded)
- OpenAI, local OpenAI-compatible servers and user-registered endpoints
- Anthropic Claude

Features:
- One streaming contract across all providers
- Sandboxed pre-/postprocessing scripts per skill
- Gemini-based skill recommendation
- Cancellation, token estimates and cost per turn
"""

__version__ = "0.1.0"

from .api.client import ChatOutcome, SupermodelClient
from .core.cancellation import CancellationToken
from .core.usage import calculate_cost, estimate_tokens
from .errors import (
    ConfigurationError,
    CredentialError,
    ProtocolError,
    ProviderError,
    ScriptError,
    SupermodelError,
    TransportError,
)
from .models.conversation_types import GroundingChunk, Message, TurnRole
from .models.credentials import CustomProvider, ProviderCredentials
from .models.generation import GenerationRequest, TurnOutcome, TurnState
from .models.skill import ProviderKind, Skill, SkillType
from .orchestration.orchestrator import StreamingOrchestrator
from .skills.catalog import SkillCatalog

__all__ = [
    # Main client
    "SupermodelClient",
    "ChatOutcome",
    "StreamingOrchestrator",
    "SkillCatalog",

    # Helpers
    "CancellationToken",
    "estimate_tokens",
    "calculate_cost",

    # Models
    "Skill",
    "SkillType",
    "ProviderKind",
    "Message",
    "TurnRole",
    "GroundingChunk",
    "ProviderCredentials",
    "CustomProvider",
    "GenerationRequest",
    "TurnOutcome",
    "TurnState",

    # Errors
    "SupermodelError",
    "ConfigurationError",
    "CredentialError",
    "TransportError",
    "ProviderError",
    "ProtocolError",
    "ScriptError",
]
