"""
Resolved provider credentials.

Storage and encryption of keys is handled outside the pipeline; adapters only
ever see this read-only record.
"""

import json
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config.constants import (
    DEFAULT_LOCAL_BASE_URL,
    ENV_ANTHROPIC_API_KEY,
    ENV_CUSTOM_PROVIDERS,
    ENV_GEMINI_API_KEY,
    ENV_GOOGLE_API_KEY,
    ENV_LOCAL_API_KEY,
    ENV_LOCAL_URL,
    ENV_OPENAI_API_KEY,
)


logger = logging.getLogger(__name__)


class CustomProvider(BaseModel):
    """User-registered OpenAI-compatible endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    base_url: str = Field(..., alias="baseURL")
    api_key: Optional[str] = Field(None, alias="apiKey")


class ProviderCredentials(BaseModel):
    """API keys and endpoints for every provider family."""

    model_config = ConfigDict(frozen=True)

    google_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    local_base_url: str = DEFAULT_LOCAL_BASE_URL
    local_api_key: Optional[str] = None
    custom_providers: List[CustomProvider] = Field(default_factory=list)

    def custom_provider(self, name: str) -> Optional[CustomProvider]:
        """Look up a registered custom provider by its exact name."""
        for provider in self.custom_providers:
            if provider.name == name:
                return provider
        return None

    @classmethod
    def from_env(cls) -> "ProviderCredentials":
        """Build credentials from the environment (``.env`` is loaded first)."""
        load_dotenv()

        custom: List[CustomProvider] = []
        raw_custom = os.getenv(ENV_CUSTOM_PROVIDERS)
        if raw_custom:
            try:
                custom = [CustomProvider.model_validate(item) for item in json.loads(raw_custom)]
            except (json.JSONDecodeError, TypeError, ValidationError) as e:
                logger.warning("Ignoring invalid %s: %s", ENV_CUSTOM_PROVIDERS, e)

        return cls(
            google_api_key=os.getenv(ENV_GOOGLE_API_KEY) or os.getenv(ENV_GEMINI_API_KEY),
            openai_api_key=os.getenv(ENV_OPENAI_API_KEY),
            anthropic_api_key=os.getenv(ENV_ANTHROPIC_API_KEY),
            local_base_url=os.getenv(ENV_LOCAL_URL) or DEFAULT_LOCAL_BASE_URL,
            local_api_key=os.getenv(ENV_LOCAL_API_KEY),
            custom_providers=custom,
        )
