from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ...config.constants import LOCAL_API_PATH, OPENAI_BASE_URL
from ...errors import ConfigurationError, CredentialError
from ...models.conversation_types import Message
from ...models.credentials import ProviderCredentials
from ...models.skill import ProviderKind, Skill
from ..base import split_history, wire_role


@dataclass(frozen=True)
class Endpoint:
    """Where an OpenAI-compatible request goes and how errors are labelled."""
    base_url: str
    api_key: Optional[str]
    provider: str
    error_label: str
    is_local: bool = False


def resolve_endpoint(skill: Skill, credentials: ProviderCredentials) -> Endpoint:
    """Pick base URL, bearer token and labels for the skill's provider kind.

    Raises:
        CredentialError: OpenAI skill without an OpenAI key
        ConfigurationError: Custom provider name that is not registered
    """
    kind = skill.provider_kind

    if kind is ProviderKind.OPENAI:
        if not credentials.openai_api_key:
            raise CredentialError.missing("OpenAI")
        return Endpoint(OPENAI_BASE_URL, credentials.openai_api_key, "OpenAI", "OpenAI API error")

    if kind is ProviderKind.LOCAL:
        base = credentials.local_base_url.rstrip("/") + LOCAL_API_PATH
        return Endpoint(base, credentials.local_api_key, "local AI", "Local model error", is_local=True)

    if kind is ProviderKind.CUSTOM:
        name = skill.custom_provider_name or skill.provider
        custom = credentials.custom_provider(name)
        if custom is None:
            raise ConfigurationError(
                f'Custom provider "{name}" not found. Please configure it in the settings.'
            )
        return Endpoint(custom.base_url.rstrip("/"), custom.api_key, name, f"{name} API error", is_local=True)

    raise ConfigurationError(f"Provider '{skill.provider}' is not OpenAI-compatible")


def build_messages(system_instruction: str, history: List[Message]) -> List[Dict[str, Any]]:
    """System instruction first, then prior chat turns, then the new input."""
    earlier, newest = split_history(history)
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_instruction}]
    for msg in earlier:
        messages.append({"role": wire_role(msg), "content": msg.content})
    messages.append({"role": wire_role(newest), "content": newest.content})
    return messages


def build_chat_payload(skill: Skill, system_instruction: str, history: List[Message],
                       stream: bool) -> Dict[str, Any]:
    return {
        "model": skill.base_model,
        "messages": build_messages(system_instruction, history),
        "stream": stream,
    }
