from __future__ import annotations

from typing import Any, AsyncGenerator, Dict, Optional

from ...core.cancellation import CancellationToken, iterate_until_cancelled
from ...errors import ProtocolError
from ...models.generation import StreamPart
from ...streaming import SSEDecoder, StreamAdapter, iter_sse_json


async def stream_chat_completions(
    client: Any,
    payload: Dict[str, Any],
    adapter: StreamAdapter,
    token: Optional[CancellationToken] = None,
) -> AsyncGenerator[StreamPart, None]:
    """Stream a raw chat-completions SSE response, yielding text parts.

    The HTTP response is closed when the ``async with`` block exits, which
    happens on ``[DONE]``, on cancellation and on errors alike.
    """
    decoder = SSEDecoder(adapter.provider)
    async with client.chat.completions.with_streaming_response.create(**payload) as response:
        lines = iterate_until_cancelled(response.iter_lines(), token)
        try:
            async for data in iter_sse_json(lines, decoder):
                part = adapter.normalize_openai(data)
                if part is not None:
                    yield part
        except ProtocolError:
            if token is not None and token.cancelled:
                return
            raise
