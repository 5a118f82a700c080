from typing import Dict, Optional

from ..errors import ConfigurationError
from ..models.skill import PROVIDER_FAMILIES, ProviderFamily, ProviderKind, Skill
from .anthropic.adapter import AnthropicProvider
from .base import ProviderAdapter
from .google.adapter import GoogleProvider
from .openai.adapter import OpenAICompatibleProvider


def default_adapters() -> Dict[ProviderFamily, ProviderAdapter]:
    return {
        ProviderFamily.GOOGLE: GoogleProvider(),
        ProviderFamily.OPENAI_COMPATIBLE: OpenAICompatibleProvider(),
        ProviderFamily.ANTHROPIC: AnthropicProvider(),
    }


class ProviderRegistry:
    """Closed dispatch from a skill's provider kind to its family adapter."""

    def __init__(self, adapters: Optional[Dict[ProviderFamily, ProviderAdapter]] = None):
        self.providers: Dict[ProviderFamily, ProviderAdapter] = default_adapters()
        if adapters:
            self.providers.update(adapters)

    def register(self, family: ProviderFamily, adapter: ProviderAdapter) -> None:
        """Replace the adapter for a family (tests inject stubs this way)."""
        self.providers[family] = adapter

    def for_kind(self, kind: ProviderKind) -> ProviderAdapter:
        family = PROVIDER_FAMILIES[kind]
        provider = self.providers.get(family)
        if provider is None:
            raise ConfigurationError(f"Provider family {family.value} is not registered")
        return provider

    def for_skill(self, skill: Skill) -> ProviderAdapter:
        return self.for_kind(skill.provider_kind)
