"""Helper functions for creating streaming mocks."""

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import httpx

from supermodel_sdk.models.generation import StreamPart
from supermodel_sdk.providers.base import ProviderAdapter


def openai_chunk(text: Optional[str]) -> Dict[str, Any]:
    """A chat.completion.chunk frame carrying ``text`` as the delta."""
    delta = {} if text is None else {"content": text}
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "model": "test-model",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }


def sse_body(frames: Sequence[Union[Dict[str, Any], str]], done: bool = True) -> bytes:
    """Encode frames as ``data:`` lines; plain strings are sent verbatim."""
    lines = []
    for frame in frames:
        if isinstance(frame, str):
            lines.append(f"data: {frame}\n\n")
        else:
            lines.append(f"data: {json.dumps(frame)}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def openai_sse(chunks: List[str]) -> bytes:
    return sse_body([openai_chunk(None)] + [openai_chunk(c) for c in chunks])


def anthropic_sse(chunks: List[str], error: Optional[str] = None) -> bytes:
    """A Messages API event stream with ``event:`` lines, as Anthropic sends it."""
    events = [
        ("message_start", {"type": "message_start", "message": {"id": "msg_test", "content": []}}),
        ("content_block_start", {"type": "content_block_start", "index": 0,
                                 "content_block": {"type": "text", "text": ""}}),
        ("ping", {"type": "ping"}),
    ]
    for chunk in chunks:
        events.append(("content_block_delta", {
            "type": "content_block_delta", "index": 0,
            "delta": {"type": "text_delta", "text": chunk},
        }))
    if error:
        events.append(("error", {"type": "error", "error": {"type": "overloaded_error", "message": error}}))
    events.append(("content_block_stop", {"type": "content_block_stop", "index": 0}))
    events.append(("message_stop", {"type": "message_stop"}))
    return "".join(f"event: {name}\ndata: {json.dumps(data)}\n\n" for name, data in events).encode()


def sse_response(body: bytes, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, headers={"content-type": "text/event-stream"}, content=body)


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


class HangingStream(httpx.AsyncByteStream):
    """Sends ``first`` and then never sends anything else."""

    def __init__(self, first: bytes):
        self.first = first
        self.closed = False

    async def __aiter__(self):
        yield self.first
        await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class RecordingTransport:
    """httpx.MockTransport handler that records every request it sees."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def json_body(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


def raising_transport(error: Exception) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        raise error
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# google-genai fakes

def genai_chunk(text: Optional[str], sources: Optional[List[tuple]] = None) -> SimpleNamespace:
    """A GenerateContentResponse-like chunk, optionally with web grounding."""
    metadata = None
    if sources:
        metadata = SimpleNamespace(grounding_chunks=[
            SimpleNamespace(web=SimpleNamespace(uri=uri, title=title)) for uri, title in sources
        ])
    return SimpleNamespace(text=text, candidates=[SimpleNamespace(grounding_metadata=metadata)])


class FakeGenaiModels:
    """Stands in for ``client.aio.models``."""

    def __init__(self, chunks: Optional[List[Any]] = None, text: str = "",
                 error: Optional[Exception] = None, hang: bool = False):
        self.chunks = chunks or []
        self.text = text
        self.error = error
        self.hang = hang
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    async def generate_content_stream(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        return self._iterate()

    async def _iterate(self):
        try:
            for chunk in self.chunks:
                yield chunk
            if self.hang:
                await asyncio.Event().wait()
        finally:
            self.closed = True

    async def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeGenaiClient:
    def __init__(self, models: FakeGenaiModels):
        self.aio = SimpleNamespace(models=models)


def genai_factory(models: FakeGenaiModels, keys: Optional[List[str]] = None):
    """Client factory for GoogleProvider/RecommendationRouter; records API keys."""
    def factory(api_key: str) -> FakeGenaiClient:
        if keys is not None:
            keys.append(api_key)
        return FakeGenaiClient(models)
    return factory


class StubProvider(ProviderAdapter):
    """
    Scripted adapter for orchestrator tests.

    Yields ``parts`` in order, then optionally raises ``error`` or hangs until
    the turn is cancelled.
    """

    def __init__(self, parts: Optional[List[StreamPart]] = None, error: Optional[Exception] = None,
                 hang: bool = False, completion: str = ""):
        self.parts = parts or []
        self.error = error
        self.hang = hang
        self.completion = completion
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    @classmethod
    def chunks(cls, *texts: str, **kwargs) -> "StubProvider":
        return cls([StreamPart(chunk=t) for t in texts], **kwargs)

    async def stream(self, skill, history, credentials, token=None):
        self.calls.append({"skill": skill, "history": list(history), "token": token})
        try:
            for part in self.parts:
                yield part
            if self.error is not None:
                raise self.error
            if self.hang:
                await asyncio.Event().wait()
        finally:
            self.closed = True

    async def complete(self, skill, history, credentials):
        self.calls.append({"skill": skill, "history": list(history)})
        if self.error is not None:
            raise self.error
        return self.completion
