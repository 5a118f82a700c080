"""Streaming orchestrator for a single conversation.

The orchestrator owns exactly one in-flight turn. It drives the turn through
``Idle -> Preprocessing -> Streaming -> Postprocessing -> Done`` (or
``Cancelled`` / ``Errored``), forwards chunks and grounding to the subscriber
as they arrive, and keeps the assistant placeholder in the conversation up to
date. It never persists anything itself.
"""

import asyncio
import functools
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import get_stream_idle_timeout
from ..core.cancellation import StreamIdleTimeout, iterate_until_cancelled
from ..core.usage import calculate_cost, estimate_tokens
from ..errors import ConfigurationError, ScriptError, SupermodelError, TransportError
from ..models.conversation_types import GroundingChunk, Message, assistant_message
from ..models.credentials import ProviderCredentials
from ..models.generation import (
    GenerationRequest,
    GenerationResult,
    TurnOutcome,
    TurnState,
    TurnWarning,
)
from ..providers.registry import ProviderRegistry
from ..scripting.hooks import postprocess, preprocess
from ..scripting.sandbox import ScriptSandbox
from ..streaming.manager import EventManager
from .errors import InvalidTransitionError, TurnInProgressError
from .state import TurnStateMachine


logger = logging.getLogger(__name__)

_DEFAULT = object()


@dataclass
class ActiveTurn:
    """Book-keeping for the turn currently owned by the orchestrator."""
    request: GenerationRequest
    machine: TurnStateMachine = field(default_factory=TurnStateMachine)
    turn_id: str = field(default_factory=lambda: f"turn-{uuid.uuid4().hex[:8]}")
    placeholder: Optional[Message] = None
    text: str = ""
    chunks: int = 0
    grounding_chunks: Optional[List[GroundingChunk]] = None
    warnings: List[TurnWarning] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)

    @property
    def state(self) -> TurnState:
        return self.machine.state

    def metadata(self) -> Dict[str, Any]:
        skill = self.request.primary_skill
        return {
            "turn_id": self.turn_id,
            "conversation_id": self.request.conversation_id,
            "skill_id": skill.id,
            "provider": skill.provider,
            "model": skill.base_model,
            "skills_used": [s.name for s in self.request.active_skills],
            "chunks": self.chunks,
            "duration_ms": (time.time() - self.started_at) * 1000,
            "states": [s.value for s in self.machine.history],
        }


class StreamingOrchestrator:
    """Runs generation turns for one conversation.

    Args:
        registry: Provider dispatch; defaults to the built-in family adapters
        sandbox: Script sandbox for pre-/postprocessing
        credentials: Provider credentials; defaults to the environment
        idle_timeout: Seconds without a stream fragment before the turn is
            failed with a ``TransportError``; None disables. Defaults to
            ``SUPERMODEL_STREAM_IDLE_TIMEOUT`` (120 s).
    """

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        sandbox: Optional[ScriptSandbox] = None,
        credentials: Optional[ProviderCredentials] = None,
        idle_timeout: Any = _DEFAULT,
    ):
        self.registry = registry or ProviderRegistry()
        self.sandbox = sandbox or ScriptSandbox()
        self.credentials = credentials or ProviderCredentials.from_env()
        self.idle_timeout = get_stream_idle_timeout() if idle_timeout is _DEFAULT else idle_timeout
        self._active: Optional[ActiveTurn] = None

    @property
    def active_turn(self) -> Optional[ActiveTurn]:
        return self._active

    def cancel(self, reason: Optional[str] = None) -> bool:
        """Cancel the in-flight turn.

        Returns False (and does nothing) when no turn is running, including
        after the last turn already finished.
        """
        turn = self._active
        if turn is None:
            return False
        cancelled = turn.request.token.cancel(reason)
        if cancelled:
            logger.info("Cancellation requested for %s in state %s", turn.turn_id, turn.state.value)
        return cancelled

    async def run_turn(
        self,
        request: GenerationRequest,
        events: Optional[EventManager] = None,
    ) -> TurnOutcome:
        """
        Run one turn to a terminal state.

        Args:
            request: Primary skill, live conversation history (last element is
                the new user message) and cancellation token
            events: Subscriber receiving start/chunk/grounding/... events

        Returns:
            TurnOutcome in state Done, Cancelled or Errored. Errors are
            reported in the outcome, never raised.

        Raises:
            TurnInProgressError: Another turn is still running
        """
        if self._active is not None:
            raise TurnInProgressError(self._active.turn_id)

        turn = ActiveTurn(request=request)
        self._active = turn
        try:
            return await self._drive(turn, events or EventManager())
        finally:
            self._active = None

    async def _drive(self, turn: ActiveTurn, events: EventManager) -> TurnOutcome:
        request = turn.request
        skill = request.primary_skill
        user_message = request.user_message
        events.turn_id = turn.turn_id

        try:
            if user_message is None:
                raise ConfigurationError("Conversation has no user message to answer.")
            raw_text = user_message.content

            turn.machine.transition(TurnState.PREPROCESSING)
            processed = await self._run_script(preprocess, skill, raw_text)

            turn.machine.transition(TurnState.STREAMING)
            provider_history = list(request.history[:-1])
            provider_history.append(user_message.model_copy(update={"content": processed}))

            skills_used = [s.name for s in request.active_skills]
            turn.placeholder = assistant_message("", skills_used)
            request.history.append(turn.placeholder)
            await events.emit_event(events.create_start_event(
                provider=skill.provider, model=skill.base_model,
                skill_id=skill.id, skills_used=skills_used,
            ))

            if not request.token.cancelled:
                adapter = self.registry.for_skill(skill)
                await self._consume(turn, adapter.stream(skill, provider_history, self.credentials, request.token), events)

            if request.token.cancelled:
                return await self._cancelled(turn, events)

            turn.machine.transition(TurnState.POSTPROCESSING)
            final_text = turn.text
            try:
                final_text = await self._run_script(postprocess, skill, turn.text)
            except ScriptError as e:
                logger.warning("Post-processing failed for skill %s: %s", skill.id, e.message)
                turn.warnings.append(TurnWarning(phase=e.phase, message=e.message))
                await events.emit_event(events.create_warning_event(phase=e.phase, message=e.message))

            return await self._done(turn, raw_text, final_text, events)

        except InvalidTransitionError:
            raise
        except Exception as e:
            if turn.machine.is_terminal:
                # Subscriber failed after the turn finished
                raise
            if turn.state == TurnState.STREAMING and request.token.cancelled:
                logger.debug("Ignoring error raised while cancelling: %s", e)
                return await self._cancelled(turn, events)
            return await self._errored(turn, e, events)

    async def _consume(self, turn: ActiveTurn, stream, events: EventManager) -> None:
        """Forward every part to the subscriber in arrival order."""
        placeholder = turn.placeholder
        try:
            async for part in iterate_until_cancelled(stream, turn.request.token, self.idle_timeout):
                if part.chunk:
                    turn.text += part.chunk
                    placeholder.content = turn.text
                    await events.emit_event(events.create_delta_event(chunk=part.chunk, chunk_index=turn.chunks))
                    turn.chunks += 1
                if part.grounding_chunks and turn.grounding_chunks is None:
                    turn.grounding_chunks = list(part.grounding_chunks)
                    placeholder.grounding_chunks = turn.grounding_chunks
                    await events.emit_event(events.create_grounding_event(grounding_chunks=turn.grounding_chunks))
        except StreamIdleTimeout as e:
            skill = turn.request.primary_skill
            raise TransportError(
                f"Connection stalled: no data received from {skill.provider} for {e.timeout:g} seconds.",
                provider=skill.provider,
            ) from e
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _run_script(self, hook, skill, text: str) -> str:
        if not skill.is_code_enhanced:
            return text
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(hook, skill, text, self.sandbox))

    async def _done(self, turn: ActiveTurn, raw_text: str, final_text: str,
                    events: EventManager) -> TurnOutcome:
        skill = turn.request.primary_skill
        tokens_in = estimate_tokens(raw_text)
        tokens_out = estimate_tokens(final_text)
        cost = calculate_cost(tokens_in, tokens_out, skill.cost_per_1k_tokens)

        placeholder = turn.placeholder
        placeholder.content = final_text
        placeholder.tokens_in = tokens_in
        placeholder.tokens_out = tokens_out
        placeholder.cost = cost

        turn.machine.transition(TurnState.DONE)
        metadata = turn.metadata()
        logger.info("Turn %s done: %d chunks, %d/%d tokens", turn.turn_id, turn.chunks, tokens_in, tokens_out)
        await events.emit_event(events.create_complete_event(
            text=final_text, total_chunks=turn.chunks, duration_ms=metadata["duration_ms"],
            tokens_in=tokens_in, tokens_out=tokens_out, cost=cost,
        ))
        return TurnOutcome(
            state=TurnState.DONE,
            message=placeholder,
            result=GenerationResult(
                text=final_text,
                grounding_chunks=turn.grounding_chunks,
                tokens_in=tokens_in,
                tokens_out=tokens_out,
                cost=cost,
            ),
            warnings=turn.warnings,
            metadata=metadata,
        )

    async def _cancelled(self, turn: ActiveTurn, events: EventManager) -> TurnOutcome:
        turn.machine.transition(TurnState.CANCELLED)
        reason = turn.request.token.reason
        logger.info("Turn %s cancelled after %d chunks", turn.turn_id, turn.chunks)
        await events.emit_event(events.create_cancelled_event(partial_text=turn.text, reason=reason))
        return TurnOutcome(
            state=TurnState.CANCELLED,
            message=turn.placeholder,
            warnings=turn.warnings,
            metadata=turn.metadata(),
        )

    async def _errored(self, turn: ActiveTurn, error: Exception, events: EventManager) -> TurnOutcome:
        if isinstance(error, SupermodelError):
            message = error.user_message
            logger.error("Turn %s failed in %s: %s", turn.turn_id, turn.state.value, message)
        else:
            message = str(error) or type(error).__name__
            logger.exception("Turn %s failed in %s with unexpected error", turn.turn_id, turn.state.value)

        turn.machine.transition(TurnState.ERRORED)
        content = f"Error: {message}"
        if turn.placeholder is None:
            turn.placeholder = assistant_message(
                content, [s.name for s in turn.request.active_skills]
            )
            turn.request.history.append(turn.placeholder)
        else:
            turn.placeholder.content = content

        await events.emit_event(events.create_error_event(error=error, message=message))
        return TurnOutcome(
            state=TurnState.ERRORED,
            message=turn.placeholder,
            warnings=turn.warnings,
            error=message,
            error_type=type(error).__name__,
            metadata=turn.metadata(),
        )
