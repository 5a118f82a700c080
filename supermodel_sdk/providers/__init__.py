"""
Provider Adapters Layer

This layer contains all provider family implementations. Each adapter
translates between the pipeline's normalized request (skill, history,
credentials) and its provider's wire protocol.
"""

from .base import ProviderAdapter
from .errors import ErrorMapper
from .openai.adapter import OpenAICompatibleProvider
from .anthropic.adapter import AnthropicProvider
from .google.adapter import GoogleProvider
from .health import ConnectionCheck, check_local_connection
from .registry import ProviderRegistry

__all__ = [
    "ProviderAdapter",
    "ErrorMapper",
    "OpenAICompatibleProvider",
    "AnthropicProvider",
    "GoogleProvider",
    "ProviderRegistry",
    "ConnectionCheck",
    "check_local_connection",
]
