from __future__ import annotations

import base64
import binascii
import logging
from typing import List

from google.genai import types

from ...models.conversation_types import Message, TurnRole
from ...models.skill import ProviderKind, Skill
from ..base import split_history


logger = logging.getLogger(__name__)


def _role(message: Message) -> str:
    return "model" if message.role == TurnRole.ASSISTANT.value else "user"


def build_contents(history: List[Message]) -> List[types.Content]:
    """Text-only prior turns, then the newest user input with its image inlined first."""
    earlier, newest = split_history(history)
    contents = [
        types.Content(role=_role(msg), parts=[types.Part.from_text(text=msg.content)])
        for msg in earlier
    ]

    parts: List[types.Part] = []
    if newest.image_data:
        image = newest.inline_image()
        if image is None:
            logger.warning("Could not parse image data URI, skipping image.")
        else:
            mime_type, data = image
            try:
                parts.append(types.Part.from_bytes(data=base64.b64decode(data), mime_type=mime_type))
            except (binascii.Error, ValueError):
                logger.warning("Image data is not valid base64, skipping image.")
    parts.append(types.Part.from_text(text=newest.content))
    contents.append(types.Content(role="user", parts=parts))
    return contents


def build_config(skill: Skill, system_instruction: str) -> types.GenerateContentConfig:
    """System instruction as a config field, plus low-latency and search options."""
    kwargs = {"system_instruction": system_instruction}
    if skill.low_latency:
        kwargs["thinking_config"] = types.ThinkingConfig(thinking_budget=0)
    if skill.provider_kind is ProviderKind.GOOGLE_SEARCH:
        kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
    return types.GenerateContentConfig(**kwargs)
