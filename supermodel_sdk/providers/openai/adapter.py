from typing import AsyncIterator, List, Optional

import httpx
import openai
from openai import AsyncOpenAI

from ..base import ProviderAdapter
from ..errors import ErrorMapper
from ...core.cancellation import CancellationToken
from ...models.conversation_types import Message
from ...models.credentials import ProviderCredentials
from ...models.generation import StreamPart
from ...models.skill import Skill
from ...observability.logging import ProviderLogger
from ...skills.instructions import build_system_instruction
from ...streaming import StreamAdapter
from .payloads import Endpoint, build_chat_payload, resolve_endpoint
from .streaming import stream_chat_completions

logger = ProviderLogger("openai_compatible")

# Sent only to satisfy the SDK constructor; the Authorization header is omitted
NO_KEY_PLACEHOLDER = "sk-no-key"


class OpenAICompatibleProvider(ProviderAdapter):
    """Adapter for OpenAI, local Ollama-style servers and custom endpoints.

    All three share the chat-completions wire shape; only the base URL, bearer
    token and error labels differ.
    """

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            http_client: Optional httpx client handed to the openai SDK
                (tests inject one built on ``httpx.MockTransport``)
        """
        self._http_client = http_client

    def get_provider_name(self) -> str:
        return "openai_compatible"

    def _client(self, endpoint: Endpoint) -> AsyncOpenAI:
        kwargs = {
            "base_url": endpoint.base_url,
            "max_retries": 0,
        }
        if endpoint.api_key:
            kwargs["api_key"] = endpoint.api_key
        else:
            kwargs["api_key"] = NO_KEY_PLACEHOLDER
            kwargs["default_headers"] = {"Authorization": openai.Omit()}
        if self._http_client is not None:
            kwargs["http_client"] = self._http_client
        return AsyncOpenAI(**kwargs)

    def _map_error(self, error: Exception, endpoint: Endpoint):
        return ErrorMapper.map_openai_error(
            error,
            provider=endpoint.provider,
            label=endpoint.error_label,
            is_local=endpoint.is_local,
            target=endpoint.base_url,
        )

    async def stream(
        self,
        skill: Skill,
        history: List[Message],
        credentials: ProviderCredentials,
        token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[StreamPart]:
        """Stream chat-completions deltas as ``StreamPart`` objects."""
        endpoint = resolve_endpoint(skill, credentials)
        payload = build_chat_payload(skill, build_system_instruction(skill), history, stream=True)

        async with logger.track_request("stream", skill.base_model) as request_info:
            adapter = StreamAdapter(endpoint.provider, skill.base_model)
            adapter.start_stream()
            try:
                async for part in stream_chat_completions(self._client(endpoint), payload, adapter, token):
                    yield part
            except Exception as e:
                raise self._map_error(e, endpoint)
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
        """Single chat-completions call with ``stream: false``."""
        endpoint = resolve_endpoint(skill, credentials)
        payload = build_chat_payload(skill, build_system_instruction(skill), history, stream=False)

        async with logger.track_request("complete", skill.base_model):
            try:
                response = await self._client(endpoint).chat.completions.create(**payload)
            except Exception as e:
                raise self._map_error(e, endpoint)

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
