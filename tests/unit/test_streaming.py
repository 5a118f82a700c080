"""Unit tests for SSE decoding and stream fragment normalization."""

import pytest

from supermodel_sdk.errors import ProtocolError
from supermodel_sdk.streaming import SSEDecoder, StreamAdapter, iter_sse_json
from tests.helpers.streaming_mocks import genai_chunk


async def _lines(*lines):
    for line in lines:
        yield line


async def _collect(lines, decoder):
    return [data async for data in iter_sse_json(lines, decoder)]


class TestSSEDecoder:

    def test_ignores_non_data_lines(self):
        decoder = SSEDecoder("openai")
        assert decoder.decode("") is None
        assert decoder.decode("event: content_block_delta") is None
        assert decoder.decode(": keep-alive") is None
        assert decoder.parsed == 0 and decoder.malformed == 0

    def test_done_sentinel(self):
        frame = SSEDecoder("openai").decode("data: [DONE]")
        assert frame.done is True

    def test_malformed_frame_is_counted(self):
        decoder = SSEDecoder("openai")
        assert decoder.decode("data: {not json") is None
        assert decoder.decode("data: [1, 2]") is None
        assert decoder.malformed == 2

    @pytest.mark.asyncio
    async def test_skips_single_bad_frame(self):
        decoder = SSEDecoder("openai")
        data = await _collect(_lines(
            'data: {"n": 1}', "data: {broken", 'data: {"n": 2}', "data: [DONE]",
        ), decoder)
        assert data == [{"n": 1}, {"n": 2}]
        assert decoder.malformed == 1

    @pytest.mark.asyncio
    async def test_stops_at_done(self):
        data = await _collect(_lines('data: {"n": 1}', "data: [DONE]", 'data: {"n": 2}'), SSEDecoder("x"))
        assert data == [{"n": 1}]

    @pytest.mark.asyncio
    async def test_only_malformed_frames_is_protocol_error(self):
        with pytest.raises(ProtocolError) as exc_info:
            await _collect(_lines("data: {oops", "data: nope"), SSEDecoder("Anthropic"))
        assert exc_info.value.provider == "Anthropic"
        assert "2 malformed chunks" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_stream_is_not_an_error(self):
        assert await _collect(_lines(), SSEDecoder("openai")) == []


class TestStreamAdapter:

    def test_openai_delta(self):
        adapter = StreamAdapter("openai")
        part = adapter.normalize_openai({"choices": [{"delta": {"content": "Hi"}}]})
        assert part.chunk == "Hi"
        assert adapter.get_metrics()["chunks"] == 1

    def test_openai_role_only_and_empty_frames(self):
        adapter = StreamAdapter("openai")
        assert adapter.normalize_openai({"choices": [{"delta": {"role": "assistant"}}]}) is None
        assert adapter.normalize_openai({"choices": []}) is None
        assert adapter.normalize_openai({"usage": {"total_tokens": 3}}) is None
        assert adapter.get_metrics()["chunks"] == 0

    def test_openai_unexpected_shape_is_skipped(self):
        adapter = StreamAdapter("openai")
        assert adapter.normalize_openai({"choices": ["not-a-dict"]}) is None
        assert adapter.skipped_fragments == 1

    def test_anthropic_only_text_deltas(self):
        adapter = StreamAdapter("anthropic")
        assert adapter.normalize_anthropic({"type": "message_start"}) is None
        assert adapter.normalize_anthropic({
            "type": "content_block_delta", "delta": {"type": "input_json_delta", "partial_json": "{"},
        }) is None
        part = adapter.normalize_anthropic({
            "type": "content_block_delta", "delta": {"type": "text_delta", "text": "lo"},
        })
        assert part.chunk == "lo"

    def test_anthropic_delta_without_body_is_skipped(self):
        adapter = StreamAdapter("anthropic")
        assert adapter.normalize_anthropic({"type": "content_block_delta"}) is None
        assert adapter.skipped_fragments == 1

    def test_google_grounding_is_emitted_once(self):
        adapter = StreamAdapter("google")
        sources = [("https://docs.python.org", "Python docs"), ("https://example.com", None)]

        first = adapter.normalize_google(genai_chunk("Re", sources))
        second = adapter.normalize_google(genai_chunk("cursion", sources))

        assert first.chunk == "Re"
        assert [c.uri for c in first.grounding_chunks] == ["https://docs.python.org", "https://example.com"]
        assert first.grounding_chunks[1].title == ""
        assert second.chunk == "cursion"
        assert second.grounding_chunks is None

    def test_google_grounding_only_chunk(self):
        adapter = StreamAdapter("google")
        part = adapter.normalize_google(genai_chunk(None, [("https://a.test", "A")]))
        assert part.chunk is None
        assert part.grounding_chunks[0].title == "A"

    def test_google_empty_chunk(self):
        assert StreamAdapter("google").normalize_google(genai_chunk("")) is None

    def test_metrics(self):
        adapter = StreamAdapter("openai", "gpt-4o-mini")
        adapter.start_stream()
        adapter.normalize_openai({"choices": [{"delta": {"content": "abc"}}]})
        adapter.normalize_openai({"choices": [{"delta": {"content": "de"}}]})
        adapter.complete_stream()

        metrics = adapter.get_metrics()
        assert metrics["chunks"] == 2
        assert metrics["total_chars"] == 5
        assert metrics["duration_seconds"] >= 0
        assert metrics["skipped_fragments"] == 0
