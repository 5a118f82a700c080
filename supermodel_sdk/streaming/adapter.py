from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from ..models.conversation_types import GroundingChunk
from ..models.generation import StreamPart


logger = logging.getLogger(__name__)


class StreamAdapter:
    """Adapter for normalizing streaming fragments across provider families.

    Turns provider-specific deltas into ``StreamPart`` objects, makes sure
    grounding metadata is emitted at most once per stream, and tracks
    streaming metrics.
    """

    def __init__(self, provider: str, model: Optional[str] = None):
        """Initialize StreamAdapter with provider name.

        Args:
            provider: Provider family name (google, openai, anthropic, ...)
            model: Model name, for metrics
        """
        self.provider = provider.lower()
        self.model = model
        self._chunk_count = 0
        self._total_chars = 0
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None
        self._grounding_sent = False
        self.skipped_fragments = 0

    def start_stream(self) -> None:
        self._start_time = time.time()

    def complete_stream(self) -> None:
        if self._end_time is None:
            self._end_time = time.time()

    def track_chunk(self, text: str) -> None:
        self._chunk_count += 1
        self._total_chars += len(text)

    def _skip(self, reason: str, fragment: Any) -> None:
        self.skipped_fragments += 1
        logger.warning("[provider=%s] Skipping stream fragment (%s): %r",
                       self.provider, reason, str(fragment)[:200])

    def _text_part(self, text: Any) -> Optional[StreamPart]:
        if not isinstance(text, str) or not text:
            return None
        self.track_chunk(text)
        return StreamPart(chunk=text)

    def normalize_openai(self, data: Dict[str, Any]) -> Optional[StreamPart]:
        """Normalize an OpenAI-compatible ``choices[0].delta.content`` frame."""
        choices = data.get("choices")
        if not choices:
            return None
        try:
            delta = choices[0].get("delta") or {}
            return self._text_part(delta.get("content"))
        except (AttributeError, IndexError, KeyError, TypeError):
            self._skip("unexpected choices shape", data)
            return None

    def normalize_anthropic(self, data: Dict[str, Any]) -> Optional[StreamPart]:
        """Normalize Anthropic typed events; only text deltas produce output."""
        if data.get("type") != "content_block_delta":
            return None
        delta = data.get("delta")
        if not isinstance(delta, dict):
            self._skip("content_block_delta without delta", data)
            return None
        if delta.get("type") != "text_delta":
            return None
        return self._text_part(delta.get("text"))

    def normalize_google(self, chunk: Any) -> Optional[StreamPart]:
        """Normalize a google-genai ``GenerateContentResponse`` chunk."""
        try:
            text = chunk.text
        except (AttributeError, ValueError, TypeError):
            self._skip("chunk without readable text", chunk)
            text = None

        part = self._text_part(text) or StreamPart()

        if not self._grounding_sent:
            grounding = self._extract_google_grounding(chunk)
            if grounding:
                self._grounding_sent = True
                part.grounding_chunks = grounding

        if part.chunk is None and part.grounding_chunks is None:
            return None
        return part

    def _extract_google_grounding(self, chunk: Any) -> List[GroundingChunk]:
        try:
            candidates = getattr(chunk, "candidates", None) or []
            if not candidates:
                return []
            metadata = getattr(candidates[0], "grounding_metadata", None)
            raw_chunks = getattr(metadata, "grounding_chunks", None) or []
        except (AttributeError, IndexError, TypeError):
            return []

        grounding: List[GroundingChunk] = []
        for raw in raw_chunks:
            web = getattr(raw, "web", None)
            uri = getattr(web, "uri", None)
            if uri:
                grounding.append(GroundingChunk(uri=uri, title=getattr(web, "title", None) or ""))
        return grounding

    def get_metrics(self) -> Dict[str, Any]:
        """Get streaming metrics.

        Returns:
            Dict with chunks, total_chars, duration_seconds, chunks_per_second
            and skipped_fragments
        """
        duration = 0.0
        if self._start_time is not None:
            duration = (self._end_time or time.time()) - self._start_time
        return {
            "chunks": self._chunk_count,
            "total_chars": self._total_chars,
            "duration_seconds": duration,
            "chunks_per_second": self._chunk_count / duration if duration > 0 else 0,
            "skipped_fragments": self.skipped_fragments,
        }
