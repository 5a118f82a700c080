from typing import AsyncIterator, List, Optional

import httpx
from anthropic import AsyncAnthropic

from ..base import ProviderAdapter
from ..errors import ErrorMapper
from ...core.cancellation import CancellationToken
from ...errors import CredentialError
from ...models.conversation_types import Message
from ...models.credentials import ProviderCredentials
from ...models.generation import StreamPart
from ...models.skill import Skill
from ...observability.logging import ProviderLogger
from ...skills.instructions import build_system_instruction
from ...streaming import StreamAdapter
from .payloads import build_messages_params
from .streaming import stream_messages

logger = ProviderLogger("anthropic")


class AnthropicProvider(ProviderAdapter):
    """Anthropic Messages API provider."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._http_client = http_client

    def _client(self, api_key: str) -> AsyncAnthropic:
        if self._http_client is not None:
            return AsyncAnthropic(api_key=api_key, max_retries=0, http_client=self._http_client)
        return AsyncAnthropic(api_key=api_key, max_retries=0)

    @staticmethod
    def _api_key(credentials: ProviderCredentials) -> str:
        if not credentials.anthropic_api_key:
            raise CredentialError.missing("Anthropic")
        return credentials.anthropic_api_key

    async def stream(
        self,
        skill: Skill,
        history: List[Message],
        credentials: ProviderCredentials,
        token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[StreamPart]:
        """Stream text deltas from Anthropic's typed event stream."""
        client = self._client(self._api_key(credentials))
        params = build_messages_params(skill, build_system_instruction(skill), history)

        async with logger.track_request("stream", skill.base_model) as request_info:
            adapter = StreamAdapter("anthropic", skill.base_model)
            adapter.start_stream()
            try:
                async for part in stream_messages(client, params, adapter, token):
                    yield part
            except Exception as e:
                raise ErrorMapper.map_anthropic_error(e)
            finally:
                adapter.complete_stream()
                logger.log_streaming_metrics(adapter.get_metrics(), skill.base_model,
                                             request_info["request_id"])
            if token is not None and token.cancelled:
                logger.info("Stream cancelled", model=skill.base_model,
                            request_id=request_info["request_id"])

    async def complete(
        self,
        skill: Skill,
        history: List[Message],
        credentials: ProviderCredentials,
    ) -> str:
        """Single messages.create call; returns the text blocks joined."""
        client = self._client(self._api_key(credentials))
        params = build_messages_params(skill, build_system_instruction(skill), history)

        async with logger.track_request("complete", skill.base_model):
            try:
                response = await client.messages.create(**params)
            except Exception as e:
                raise ErrorMapper.map_anthropic_error(e)

        return "".join(
            block.text for block in (response.content or [])
            if getattr(block, "type", None) == "text"
        )
