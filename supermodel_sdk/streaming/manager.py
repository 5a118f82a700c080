from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from ..models.conversation_types import GroundingChunk
from ..models.events import (
    StreamEvent,
    StreamStartEvent,
    StreamDeltaEvent,
    StreamGroundingEvent,
    StreamWarningEvent,
    StreamCompleteEvent,
    StreamCancelledEvent,
    StreamErrorEvent
)

Handler = Callable[[Any], Awaitable[None]]


class EventManager:
    """Subscriber for a turn: dispatches typed events to optional async callbacks.

    Events built through the ``create_*`` factories carry the id of the turn
    they belong to as ``request_id``; the orchestrator sets ``turn_id`` when
    the turn starts.
    """

    def __init__(
        self,
        on_start: Optional[Callable[[StreamStartEvent], Awaitable[None]]] = None,
        on_chunk: Optional[Callable[[StreamDeltaEvent], Awaitable[None]]] = None,
        on_grounding: Optional[Callable[[StreamGroundingEvent], Awaitable[None]]] = None,
        on_warning: Optional[Callable[[StreamWarningEvent], Awaitable[None]]] = None,
        on_complete: Optional[Callable[[StreamCompleteEvent], Awaitable[None]]] = None,
        on_cancel: Optional[Callable[[StreamCancelledEvent], Awaitable[None]]] = None,
        on_error: Optional[Callable[[StreamErrorEvent], Awaitable[None]]] = None,
        turn_id: Optional[str] = None,
    ) -> None:
        self.turn_id = turn_id
        self._handlers: Dict[Type[StreamEvent], Optional[Handler]] = {
            StreamStartEvent: on_start,
            StreamDeltaEvent: on_chunk,
            StreamGroundingEvent: on_grounding,
            StreamWarningEvent: on_warning,
            StreamCompleteEvent: on_complete,
            StreamCancelledEvent: on_cancel,
            StreamErrorEvent: on_error,
        }

    @classmethod
    def forwarding(cls, handler: Handler) -> "EventManager":
        """A manager that sends every event type to one callback."""
        return cls(on_start=handler, on_chunk=handler, on_grounding=handler, on_warning=handler,
                   on_complete=handler, on_cancel=handler, on_error=handler)

    def _stamp(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        if self.turn_id and "request_id" not in kwargs:
            kwargs["request_id"] = self.turn_id
        kwargs.setdefault("timestamp", time.time())
        return kwargs

    async def emit_event(self, event: StreamEvent) -> None:
        """Deliver ``event`` to the callback registered for its type, if any."""
        handler = self._handlers.get(type(event))
        if handler is not None:
            await handler(event)

    def create_start_event(self, provider: str, model: str, skill_id: str,
                           skills_used: List[str], **kwargs) -> StreamStartEvent:
        return StreamStartEvent(provider=provider, model=model, skill_id=skill_id,
                                skills_used=skills_used, **self._stamp(kwargs))

    def create_delta_event(self, chunk: str, chunk_index: int, **kwargs) -> StreamDeltaEvent:
        return StreamDeltaEvent(chunk=chunk, chunk_index=chunk_index, **self._stamp(kwargs))

    def create_grounding_event(self, grounding_chunks: List[GroundingChunk], **kwargs) -> StreamGroundingEvent:
        return StreamGroundingEvent(grounding_chunks=grounding_chunks, **self._stamp(kwargs))

    def create_warning_event(self, phase: str, message: str, **kwargs) -> StreamWarningEvent:
        return StreamWarningEvent(phase=phase, message=message, **self._stamp(kwargs))

    def create_complete_event(self, text: str, total_chunks: int, duration_ms: float,
                              tokens_in: int, tokens_out: int, cost: float, **kwargs) -> StreamCompleteEvent:
        return StreamCompleteEvent(text=text, total_chunks=total_chunks, duration_ms=duration_ms,
                                   tokens_in=tokens_in, tokens_out=tokens_out, cost=cost,
                                   **self._stamp(kwargs))

    def create_cancelled_event(self, partial_text: str, reason: Optional[str], **kwargs) -> StreamCancelledEvent:
        return StreamCancelledEvent(partial_text=partial_text, reason=reason, **self._stamp(kwargs))

    def create_error_event(self, error: Exception, message: str, **kwargs) -> StreamErrorEvent:
        return StreamErrorEvent(error=error, message=message, **self._stamp(kwargs))
