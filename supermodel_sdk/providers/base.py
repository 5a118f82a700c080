"""
Base Provider Adapter Interface

This module defines the abstract base class for all provider family adapters.
Each family (Google, OpenAI-compatible, Anthropic) implements the same two
operations so the orchestrator never needs to know which wire protocol is in
use.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional

from ..core.cancellation import CancellationToken
from ..models.conversation_types import Message, TurnRole
from ..models.credentials import ProviderCredentials
from ..models.generation import StreamPart
from ..models.skill import Skill


class ProviderAdapter(ABC):
    """
    Abstract base class for provider family adapters.

    The adapter is responsible for:
    - Checking credentials before any network call
    - Translating the skill and history into the provider's wire format
    - Normalizing streamed fragments into ``StreamPart`` objects
    - Mapping provider failures onto the pipeline's error taxonomy

    Provider adapters should NOT contain:
    - Script execution (the orchestrator has already preprocessed the input)
    - Skill selection or recommendation logic
    - Token or cost accounting
    """

    @abstractmethod
    def stream(
        self,
        skill: Skill,
        history: List[Message],
        credentials: ProviderCredentials,
        token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[StreamPart]:
        """
        Stream a reply for the newest user message in ``history``.

        Args:
            skill: Primary skill (provider, model and prompt configuration)
            history: Conversation so far; the last element is the user input
                being answered. Must not contain the assistant placeholder.
            credentials: Resolved provider credentials
            token: Cancellation token for the turn

        Yields:
            StreamPart: text chunks and, at most once, grounding chunks

        Raises:
            CredentialError: Key missing (before any network call) or rejected
            TransportError: Provider or local server unreachable, or idle
            ProviderError: Non-2xx provider response
            ProtocolError: No fragment of the response could be parsed
            ConfigurationError: Unknown custom provider
        """

    @abstractmethod
    async def complete(
        self,
        skill: Skill,
        history: List[Message],
        credentials: ProviderCredentials,
    ) -> str:
        """
        Generate a single, non-streamed reply.

        Used by the skill test path. Raises the same errors as ``stream``.
        """

    def get_provider_name(self) -> str:
        """
        Get the name of this provider family.

        By default, returns the class name without 'Provider' suffix.
        """
        class_name = self.__class__.__name__
        if class_name.endswith("Provider"):
            return class_name[:-8].lower()
        return class_name.lower()


def chat_history(history: List[Message]) -> List[Message]:
    """Only user and assistant messages are forwarded to providers."""
    return [msg for msg in history if msg.is_chat_turn]


def split_history(history: List[Message]):
    """Split into (earlier chat turns, newest message).

    The newest message is the input being answered and is always sent, even
    when its role is unusual; earlier system messages are dropped.
    """
    if not history:
        raise ValueError("history must contain the user message being answered")
    return chat_history(history[:-1]), history[-1]


def wire_role(message: Message) -> str:
    return TurnRole.ASSISTANT.value if message.role == TurnRole.ASSISTANT.value else TurnRole.USER.value
