from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProviderKind(str, Enum):
    """Closed set of provider kinds a skill can be bound to."""
    GOOGLE = "google"
    GOOGLE_SEARCH = "google_search"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    LOCAL = "local"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, provider: str) -> "ProviderKind":
        """Map a skill's provider string to a kind; unknown names are custom."""
        normalized = (provider or "").strip().lower()
        for kind in cls:
            if kind is not cls.CUSTOM and kind.value == normalized:
                return kind
        return cls.CUSTOM


class ProviderFamily(str, Enum):
    """Wire-protocol families; every ProviderKind belongs to exactly one."""
    GOOGLE = "google"
    OPENAI_COMPATIBLE = "openai_compatible"
    ANTHROPIC = "anthropic"


PROVIDER_FAMILIES = {
    ProviderKind.GOOGLE: ProviderFamily.GOOGLE,
    ProviderKind.GOOGLE_SEARCH: ProviderFamily.GOOGLE,
    ProviderKind.OPENAI: ProviderFamily.OPENAI_COMPATIBLE,
    ProviderKind.LOCAL: ProviderFamily.OPENAI_COMPATIBLE,
    ProviderKind.CUSTOM: ProviderFamily.OPENAI_COMPATIBLE,
    ProviderKind.ANTHROPIC: ProviderFamily.ANTHROPIC,
}


class SkillType(str, Enum):
    """How a skill transforms a turn."""
    PROMPT = "prompt"
    CODE_ENHANCED = "code-enhanced"


class SkillSummary(BaseModel):
    """Catalog view of a skill handed to the recommendation router."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    category: str = ""
    is_installed: bool = Field(False, alias="isInstalled")


class Skill(BaseModel):
    """
    A skill pack: provider/model binding plus prompt and script configuration.

    Only the turn's primary skill governs generation; other active skills are
    reported in the reply metadata.
    """

    model_config = ConfigDict(use_enum_values=False)

    id: str
    name: str
    provider: str = Field(..., description="Built-in provider name or a registered custom provider name")
    base_model: str = Field(..., description="Provider model identifier")
    system_instructions: Optional[str] = None
    prompt_template: Optional[str] = None
    skill_type: SkillType = SkillType.PROMPT
    preprocessing_code: Optional[str] = None
    postprocessing_code: Optional[str] = None
    cost_per_1k_tokens: float = Field(0.0, description="Cost per 1k tokens, in cents")
    low_latency: bool = False

    # Catalog metadata
    description: str = ""
    category: str = ""
    is_installed: bool = False
    is_active: bool = False
    tags: List[str] = Field(default_factory=list)

    @field_validator("cost_per_1k_tokens")
    def validate_cost(cls, v):
        if v is None:
            return 0.0
        if v < 0:
            raise ValueError("cost_per_1k_tokens must be non-negative")
        return v

    @property
    def provider_kind(self) -> ProviderKind:
        return ProviderKind.parse(self.provider)

    @property
    def provider_family(self) -> ProviderFamily:
        return PROVIDER_FAMILIES[self.provider_kind]

    @property
    def custom_provider_name(self) -> Optional[str]:
        """Registered provider name for custom skills, else None."""
        if self.provider_kind is ProviderKind.CUSTOM:
            return self.provider
        return None

    @property
    def is_code_enhanced(self) -> bool:
        return self.skill_type == SkillType.CODE_ENHANCED

    def summary(self) -> SkillSummary:
        return SkillSummary(
            id=self.id,
            name=self.name,
            description=self.description,
            category=self.category,
            is_installed=self.is_installed,
        )
