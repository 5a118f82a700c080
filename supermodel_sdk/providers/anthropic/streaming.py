from __future__ import annotations

from typing import Any, AsyncGenerator, Dict, Optional

from ...core.cancellation import CancellationToken, iterate_until_cancelled
from ...errors import ProviderError, ProtocolError
from ...models.generation import StreamPart
from ...streaming import SSEDecoder, StreamAdapter, iter_sse_json
from ..errors import extract_error_message


async def stream_messages(
    client: Any,
    params: Dict[str, Any],
    adapter: StreamAdapter,
    token: Optional[CancellationToken] = None,
) -> AsyncGenerator[StreamPart, None]:
    """Stream a raw Anthropic messages response and yield text parts.

    Only ``content_block_delta``/``text_delta`` events produce output; an
    in-stream ``error`` event ends the stream with a ``ProviderError``.
    """
    decoder = SSEDecoder(adapter.provider)
    async with client.messages.with_streaming_response.create(stream=True, **params) as response:
        lines = iterate_until_cancelled(response.iter_lines(), token)
        try:
            async for event in iter_sse_json(lines, decoder):
                if event.get("type") == "error":
                    detail = extract_error_message(event, fallback="stream error")
                    raise ProviderError(f"Anthropic API error: {detail}", provider="Anthropic")
                part = adapter.normalize_anthropic(event)
                if part is not None:
                    yield part
        except ProtocolError:
            if token is not None and token.cancelled:
                return
            raise
