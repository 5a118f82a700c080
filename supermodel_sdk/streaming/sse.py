"""
Server-Sent-Events decoding for provider streams.

OpenAI-compatible and Anthropic streams are newline-delimited ``data: <json>``
frames. A frame that fails to parse is logged and skipped; only a stream made
entirely of bad frames is treated as a protocol failure.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Dict, Optional

from ..errors import ProtocolError


logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


@dataclass
class SSEFrame:
    """A decoded ``data:`` line."""
    data: Optional[Dict[str, Any]] = None
    done: bool = False


class SSEDecoder:
    """Line-oriented decoder that tracks parsed and malformed frame counts."""

    def __init__(self, provider: str):
        self.provider = provider
        self.parsed = 0
        self.malformed = 0

    def decode(self, line: str) -> Optional[SSEFrame]:
        """Decode one line. Returns None for non-data lines and bad frames."""
        line = line.rstrip("\r")
        if not line.startswith("data:"):
            # Blank separators, "event:" names, ":" comments, "id:" lines
            return None

        payload = line[5:].strip()
        if payload == DONE_SENTINEL:
            return SSEFrame(done=True)
        if not payload:
            return None

        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            self.malformed += 1
            logger.warning("[provider=%s] Failed to parse stream chunk: %s", self.provider, line[:200])
            return None

        if not isinstance(data, dict):
            self.malformed += 1
            logger.warning("[provider=%s] Ignoring non-object stream chunk: %s", self.provider, line[:200])
            return None

        self.parsed += 1
        return SSEFrame(data=data)

    def check_complete(self) -> None:
        """Raise ProtocolError if nothing in the stream could be parsed."""
        if self.parsed == 0 and self.malformed > 0:
            raise ProtocolError(
                f"{self.provider} returned an unparsable response "
                f"({self.malformed} malformed chunks)",
                provider=self.provider,
            )


async def iter_sse_json(lines: AsyncIterable[str], decoder: SSEDecoder) -> AsyncIterator[Dict[str, Any]]:
    """Yield JSON payloads from SSE lines until ``[DONE]`` or end of stream."""
    async for line in lines:
        frame = decoder.decode(line)
        if frame is None:
            continue
        if frame.done:
            break
        yield frame.data
    decoder.check_complete()
