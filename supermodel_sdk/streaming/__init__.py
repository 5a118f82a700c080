"""Streaming and events layer for real-time turn output.

This layer handles:
- Provider fragment normalization (StreamAdapter)
- Server-Sent-Events decoding with per-frame error tolerance
- Subscriber event dispatch (on_start, on_chunk, on_grounding, ...)
"""

from .adapter import StreamAdapter
from .manager import EventManager
from .sse import SSEDecoder, SSEFrame, iter_sse_json

__all__ = [
    "StreamAdapter",
    "EventManager",
    "SSEDecoder",
    "SSEFrame",
    "iter_sse_json",
]
