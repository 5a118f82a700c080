from typing import Any, AsyncIterator, Callable, List, Optional

from google import genai

from ..base import ProviderAdapter
from ..errors import ErrorMapper
from ...core.cancellation import CancellationToken, iterate_until_cancelled
from ...errors import CredentialError
from ...models.conversation_types import Message
from ...models.credentials import ProviderCredentials
from ...models.generation import StreamPart
from ...models.skill import Skill
from ...observability.logging import ProviderLogger
from ...skills.instructions import build_system_instruction
from ...streaming import StreamAdapter
from .payloads import build_config, build_contents

logger = ProviderLogger("google")


def default_client_factory(api_key: str) -> Any:
    return genai.Client(api_key=api_key)


class GoogleProvider(ProviderAdapter):
    """Gemini provider (plain and search-grounded) using the google-genai SDK."""

    def __init__(self, client_factory: Optional[Callable[[str], Any]] = None):
        """
        Args:
            client_factory: Builds a ``genai.Client`` from an API key; tests
                pass a factory returning a fake client
        """
        self._client_factory = client_factory or default_client_factory

    def _client(self, credentials: ProviderCredentials) -> Any:
        if not credentials.google_api_key:
            raise CredentialError.missing("Google")
        return self._client_factory(credentials.google_api_key)

    async def stream(
        self,
        skill: Skill,
        history: List[Message],
        credentials: ProviderCredentials,
        token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[StreamPart]:
        """Stream Gemini chunks; grounding chunks are forwarded once."""
        client = self._client(credentials)
        contents = build_contents(history)
        config = build_config(skill, build_system_instruction(skill))

        async with logger.track_request("stream", skill.base_model) as request_info:
            adapter = StreamAdapter("google", skill.base_model)
            adapter.start_stream()
            response = None
            try:
                response = await client.aio.models.generate_content_stream(
                    model=skill.base_model,
                    contents=contents,
                    config=config,
                )
                async for chunk in iterate_until_cancelled(response, token):
                    part = adapter.normalize_google(chunk)
                    if part is not None:
                        yield part
            except Exception as e:
                raise ErrorMapper.map_google_error(e)
            finally:
                aclose = getattr(response, "aclose", None)
                if aclose is not None:
                    await aclose()
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
        """Single generate_content call."""
        client = self._client(credentials)
        contents = build_contents(history)
        config = build_config(skill, build_system_instruction(skill))

        async with logger.track_request("complete", skill.base_model):
            try:
                response = await client.aio.models.generate_content(
                    model=skill.base_model,
                    contents=contents,
                    config=config,
                )
            except Exception as e:
                raise ErrorMapper.map_google_error(e)

        return response.text or ""
