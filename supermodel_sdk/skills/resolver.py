"""
Skill resolution.

Decides which skill governs a turn: the active set when there is one,
otherwise a router recommendation, otherwise the general conversation skill.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from ..config.constants import GENERAL_SKILL_ID
from ..errors import ConfigurationError
from ..models.conversation_types import Message
from ..models.credentials import ProviderCredentials
from ..models.skill import Skill
from ..routing.recommender import RecommendationRouter, recent_context
from .catalog import SkillCatalog


logger = logging.getLogger(__name__)


class ResolutionSource(str, Enum):
    """Where the primary skill came from."""
    ACTIVE = "active"
    RECOMMENDED = "recommended"
    FALLBACK = "fallback"


@dataclass
class ResolvedSkills:
    primary: Skill
    active: List[Skill] = field(default_factory=list)
    source: ResolutionSource = ResolutionSource.ACTIVE
    recommended_id: Optional[str] = None

    @property
    def is_recommendation(self) -> bool:
        return self.source == ResolutionSource.RECOMMENDED


class SkillResolver:
    """Picks the primary skill for a turn."""

    def __init__(self, router: Optional[RecommendationRouter] = None):
        self.router = router or RecommendationRouter()

    @staticmethod
    def primary_skill(active: Sequence[Skill]) -> Optional[Skill]:
        """First skill in activation order; no other tie-break is applied."""
        return active[0] if active else None

    async def resolve(
        self,
        prompt: str,
        history: List[Message],
        active: Sequence[Skill],
        catalog: SkillCatalog,
        credentials: ProviderCredentials,
        skip_recommendation: bool = False,
    ) -> ResolvedSkills:
        """
        Resolve the skills for a turn.

        Args:
            prompt: Raw user text of the turn
            history: Conversation including the new user message as last element
            active: Skills the user has switched on, in activation order
            catalog: Every skill the user can use
            credentials: Used by the router's Gemini call
            skip_recommendation: Go straight to the general skill when nothing is active

        Raises:
            ConfigurationError: Nothing active or recommended and the general
                skill is missing from the catalog
        """
        primary = self.primary_skill(active)
        if primary is not None:
            return ResolvedSkills(primary=primary, active=list(active))

        recommended_id = None
        if not skip_recommendation:
            recommended_id = await self.router.recommend(
                prompt, recent_context(history), catalog.summaries(), credentials
            )
            recommended = catalog.get(recommended_id)
            if recommended is not None and recommended.id != GENERAL_SKILL_ID:
                return ResolvedSkills(
                    primary=recommended,
                    active=[recommended],
                    source=ResolutionSource.RECOMMENDED,
                    recommended_id=recommended_id,
                )

        general = catalog.general()
        if general is None:
            logger.error("General Conversation skill pack is missing.")
            raise ConfigurationError("The General Conversation skill is missing.")
        return ResolvedSkills(
            primary=general,
            active=[general],
            source=ResolutionSource.FALLBACK,
            recommended_id=recommended_id,
        )
