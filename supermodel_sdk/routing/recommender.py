"""
Skill recommendation router.

A single structured-output Gemini call picks the catalog entry that best fits
the user's prompt. Recommendation is best-effort: every failure degrades to a
fallback id instead of propagating.
"""

import json
import logging
from typing import Any, Callable, List, Optional, Sequence, Union

from google import genai
from google.genai import types
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import get_router_model
from ..config.constants import GENERAL_SKILL_ID, ROUTER_HISTORY_SNIPPET_CHARS, ROUTER_HISTORY_WINDOW
from ..models.conversation_types import Message, TurnRole
from ..models.credentials import ProviderCredentials
from ..models.skill import Skill, SkillSummary


logger = logging.getLogger(__name__)


ROUTER_SYSTEM_INSTRUCTION = f"""You are an intelligent AI task router. Your job is to analyze the user's latest prompt in the context of the recent conversation history and select the most appropriate tool (Skill Pack) to handle the request.

Prioritization Rules:
1. If an **installed** skill ('isInstalled: true') is a good fit, strongly prefer it over a non-installed one.
2. The 'General' skill (ID: {GENERAL_SKILL_ID}) should be used only as a last resort if no other skill is a clear match.

Respond ONLY with a JSON object containing the ID of the best skill. Do not add any extra explanation or conversational text."""

NO_HISTORY_TEXT = "No previous messages in this session."

ROUTER_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={"skillId": types.Schema(type=types.Type.STRING)},
    required=["skillId"],
)


class RouterChoice(BaseModel):
    """Structured router answer."""

    model_config = ConfigDict(populate_by_name=True)

    skill_id: str = Field(..., alias="skillId")


def recent_context(history: List[Message]) -> List[Message]:
    """The last (up to) three messages before the newest one."""
    return history[-(ROUTER_HISTORY_WINDOW + 1):-1]


def fallback_skill_id(catalog: Sequence[SkillSummary]) -> Optional[str]:
    """General skill when listed, otherwise the first entry; None for an empty catalog."""
    if not catalog:
        return None
    for summary in catalog:
        if summary.id == GENERAL_SKILL_ID:
            return summary.id
    return catalog[0].id


def format_history(recent_history: List[Message]) -> str:
    if not recent_history:
        return NO_HISTORY_TEXT
    return "\n---\n".join(
        f"{'AI' if msg.role == TurnRole.ASSISTANT.value else 'User'}: "
        f"{msg.content[:ROUTER_HISTORY_SNIPPET_CHARS]}..."
        for msg in recent_history
    )


def build_router_contents(prompt: str, recent_history: List[Message],
                          catalog: Sequence[SkillSummary]) -> str:
    skill_list = [summary.model_dump(by_alias=True) for summary in catalog]
    return (
        "RECENT CONVERSATION HISTORY:\n"
        f"{format_history(recent_history)}\n\n"
        f'LATEST USER PROMPT: "{prompt}"\n\n'
        "AVAILABLE TOOLS (note the 'isInstalled' status):\n"
        f"{json.dumps(skill_list, indent=2)}"
    )


def _as_summaries(catalog: Sequence[Union[Skill, SkillSummary]]) -> List[SkillSummary]:
    return [item.summary() if isinstance(item, Skill) else item for item in catalog]


class RecommendationRouter:
    """Picks a skill id for a prompt using a Gemini structured-output call."""

    def __init__(self, client_factory: Optional[Callable[[str], Any]] = None,
                 model: Optional[str] = None):
        self._client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))
        self.model = model or get_router_model()

    async def recommend(
        self,
        prompt: str,
        recent_history: List[Message],
        catalog: Sequence[Union[Skill, SkillSummary]],
        credentials: ProviderCredentials,
    ) -> Optional[str]:
        """
        Recommend a skill id for ``prompt``.

        Args:
            prompt: Latest user prompt
            recent_history: Up to three messages preceding the prompt
            catalog: Skills (or their summaries) the router may choose from
            credentials: Credentials; the Google key is used for routing

        Returns:
            A catalog id. Falls back to the general skill id (or the first
            entry) on any failure, and returns None only for an empty catalog.
        """
        summaries = _as_summaries(catalog)
        fallback = fallback_skill_id(summaries)
        if fallback is None:
            return None

        if not credentials.google_api_key:
            logger.warning("Google API Key is not configured for skill recommendation; using fallback")
            return fallback

        try:
            client = self._client_factory(credentials.google_api_key)
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=build_router_contents(prompt, recent_history, summaries),
                config=types.GenerateContentConfig(
                    system_instruction=ROUTER_SYSTEM_INSTRUCTION,
                    response_mime_type="application/json",
                    response_schema=ROUTER_RESPONSE_SCHEMA,
                ),
            )
            choice = RouterChoice.model_validate_json((response.text or "").strip())
        except ValidationError as e:
            logger.error("Router returned an unusable answer: %s", e)
            return fallback
        except Exception as e:
            logger.error("Error in skill recommendation call: %s", e)
            return fallback

        if any(summary.id == choice.skill_id for summary in summaries):
            logger.info("Router picked skill %s", choice.skill_id)
            return choice.skill_id

        logger.warning("Router picked unknown skill id %r; using fallback", choice.skill_id)
        return fallback
