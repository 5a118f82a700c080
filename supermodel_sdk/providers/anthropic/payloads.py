from __future__ import annotations

from typing import Any, Dict, List

from ...config.constants import ANTHROPIC_DEFAULT_MAX_TOKENS
from ...models.conversation_types import Message
from ...models.skill import Skill
from ..base import split_history, wire_role


def build_messages(history: List[Message]) -> List[Dict[str, Any]]:
    """Prior chat turns followed by the new input; system is not a message."""
    earlier, newest = split_history(history)
    messages = [{"role": wire_role(msg), "content": msg.content} for msg in earlier]
    messages.append({"role": wire_role(newest), "content": newest.content})
    return messages


def build_messages_params(skill: Skill, system_instruction: str, history: List[Message]) -> Dict[str, Any]:
    """Assemble messages.create params.

    Drops an empty system string to satisfy SDK validators.
    """
    params: Dict[str, Any] = {
        "model": skill.base_model,
        "messages": build_messages(history),
        "max_tokens": ANTHROPIC_DEFAULT_MAX_TOKENS,
    }
    if system_instruction:
        params["system"] = system_instruction
    return params
