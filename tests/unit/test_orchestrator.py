"""Unit tests for the turn state machine and the streaming orchestrator."""

import asyncio
import math

import pytest

from supermodel_sdk.errors import CredentialError, ScriptError
from supermodel_sdk.models.conversation_types import GroundingChunk, TurnRole, user_message
from supermodel_sdk.models.generation import GenerationRequest, StreamPart, TurnState
from supermodel_sdk.models.skill import ProviderFamily, Skill, SkillType
from supermodel_sdk.orchestration import (
    InvalidTransitionError,
    StreamingOrchestrator,
    TurnInProgressError,
    TurnStateMachine,
)
from supermodel_sdk.providers.registry import ProviderRegistry
from supermodel_sdk.streaming import EventManager
from tests.helpers.streaming_mocks import StubProvider


class RecordingEvents(EventManager):
    """EventManager that records every event it receives."""

    def __init__(self, on_chunk=None):
        self.events = []

        async def record(event):
            self.events.append(event)
            if on_chunk is not None and event.type == "delta":
                await on_chunk(event)

        super().__init__(
            on_start=record, on_chunk=record, on_grounding=record, on_warning=record,
            on_complete=record, on_cancel=record, on_error=record,
        )

    @property
    def types(self):
        return [event.type for event in self.events]


def _orchestrator(stub, credentials, inline_sandbox, idle_timeout=None):
    registry = ProviderRegistry({family: stub for family in ProviderFamily})
    return StreamingOrchestrator(registry=registry, sandbox=inline_sandbox,
                                 credentials=credentials, idle_timeout=idle_timeout)


def _skill(**kwargs):
    defaults = dict(id="writer", name="Writer", provider="openai", base_model="gpt-4o-mini",
                    cost_per_1k_tokens=2.0)
    defaults.update(kwargs)
    return Skill(**defaults)


class TestTurnStateMachine:

    def test_happy_path(self):
        machine = TurnStateMachine()
        for state in (TurnState.PREPROCESSING, TurnState.STREAMING, TurnState.POSTPROCESSING, TurnState.DONE):
            machine.transition(state)
        assert machine.is_terminal
        assert machine.history[0] is TurnState.IDLE
        assert machine.history[-1] is TurnState.DONE

    def test_cancel_only_from_streaming(self):
        machine = TurnStateMachine()
        machine.transition(TurnState.PREPROCESSING)
        assert not machine.can_transition(TurnState.CANCELLED)
        machine.transition(TurnState.STREAMING)
        assert machine.can_transition(TurnState.CANCELLED)

    def test_terminal_states_are_final(self):
        machine = TurnStateMachine()
        machine.transition(TurnState.ERRORED)
        with pytest.raises(InvalidTransitionError):
            machine.transition(TurnState.PREPROCESSING)

    def test_cannot_skip_streaming(self):
        machine = TurnStateMachine()
        machine.transition(TurnState.PREPROCESSING)
        with pytest.raises(InvalidTransitionError):
            machine.transition(TurnState.POSTPROCESSING)


class TestStreamingOrchestrator:

    @pytest.mark.asyncio
    async def test_done_turn_assembles_chunks(self, credentials, inline_sandbox, sample_history):
        stub = StubProvider.chunks("Re", "cur", "sion")
        events = RecordingEvents()
        history = list(sample_history)
        skill = _skill()

        outcome = await _orchestrator(stub, credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=skill, history=history), events
        )

        assert outcome.state is TurnState.DONE
        assert outcome.result.text == "Recursion"
        assert events.types == ["start", "delta", "delta", "delta", "complete"]
        assert [e.chunk_index for e in events.events if e.type == "delta"] == [0, 1, 2]

        # placeholder appended after the user message and filled in place
        assert len(history) == len(sample_history) + 1
        placeholder = history[-1]
        assert placeholder is outcome.message
        assert placeholder.role == TurnRole.ASSISTANT.value
        assert placeholder.content == "Recursion"
        assert placeholder.skill_packs_used == ["Writer"]

        # "explain recursion" is 17 chars, "Recursion" is 9
        assert outcome.result.tokens_in == 5
        assert outcome.result.tokens_out == 3
        assert outcome.result.cost == pytest.approx(8 / 1000 * 0.02)
        assert placeholder.tokens_in == 5 and placeholder.tokens_out == 3

        # the provider saw the history without the placeholder
        seen = stub.calls[0]["history"]
        assert seen[-1].content == "explain recursion"
        assert all(m.id != placeholder.id for m in seen)
        assert stub.closed is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt_chars", [0, 1, 4, 4000])
    @pytest.mark.parametrize("answer_chars", [0, 1, 4, 4000])
    async def test_usage_and_cost(self, credentials, inline_sandbox, prompt_chars, answer_chars):
        stub = StubProvider.chunks("b" * answer_chars) if answer_chars else StubProvider()
        skill = _skill(cost_per_1k_tokens=2.0)

        outcome = await _orchestrator(stub, credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=skill, history=[user_message("a" * prompt_chars)])
        )

        tokens_in = math.ceil(prompt_chars / 4)
        tokens_out = math.ceil(answer_chars / 4)
        assert outcome.state is TurnState.DONE
        assert outcome.result.tokens_in == tokens_in
        assert outcome.result.tokens_out == tokens_out
        assert outcome.result.cost == ((tokens_in + tokens_out) / 1000) * (2.0 / 100)
        assert outcome.message.cost == outcome.result.cost

    @pytest.mark.asyncio
    async def test_preprocessed_prompt_is_sent_but_not_stored(self, credentials, inline_sandbox, shouty_skill):
        stub = StubProvider.chunks("ok")
        history = [user_message("hello")]

        outcome = await _orchestrator(stub, credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=shouty_skill, history=history)
        )

        assert stub.calls[0]["history"][-1].content == "HELLO"
        assert history[0].content == "hello"
        assert outcome.result.text == "ok!"
        assert history[-1].content == "ok!"

    @pytest.mark.asyncio
    async def test_preprocessing_failure_is_fatal_and_skips_provider(self, credentials, inline_sandbox):
        skill = _skill(skill_type=SkillType.CODE_ENHANCED, preprocessing_code="raise ValueError('bad prompt')")
        stub = StubProvider.chunks("never")
        events = RecordingEvents()
        history = [user_message("hello")]

        outcome = await _orchestrator(stub, credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=skill, history=history), events
        )

        assert outcome.state is TurnState.ERRORED
        assert len(stub.calls) == 0
        assert outcome.error == "Skill Pack Error (Preprocessing): ValueError: bad prompt"
        assert outcome.error_type == "ScriptError"
        assert history[-1].content == "Error: Skill Pack Error (Preprocessing): ValueError: bad prompt"
        assert events.types == ["error"]

    @pytest.mark.asyncio
    async def test_postprocessing_failure_degrades_to_warning(self, credentials, inline_sandbox):
        skill = _skill(skill_type=SkillType.CODE_ENHANCED, postprocessing_code="return response.missing()")
        events = RecordingEvents()

        outcome = await _orchestrator(StubProvider.chunks("raw ", "text"), credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=skill, history=[user_message("hello")]), events
        )

        assert outcome.state is TurnState.DONE
        assert outcome.result.text == "raw text"
        assert outcome.message.content == "raw text"
        assert len(outcome.warnings) == 1
        assert outcome.warnings[0].phase == ScriptError.POSTPROCESSING
        assert events.types == ["start", "delta", "delta", "warning", "complete"]

    @pytest.mark.asyncio
    async def test_cancel_mid_stream_keeps_partial_text(self, credentials, inline_sandbox):
        stub = StubProvider.chunks("Hel", hang=True)
        holder = {}

        async def cancel_on_first_chunk(event):
            assert holder["orchestrator"].cancel("user pressed stop") is True

        events = RecordingEvents(on_chunk=cancel_on_first_chunk)
        orchestrator = _orchestrator(stub, credentials, inline_sandbox)
        holder["orchestrator"] = orchestrator
        history = [user_message("hello")]

        outcome = await asyncio.wait_for(
            orchestrator.run_turn(GenerationRequest(primary_skill=_skill(), history=history), events),
            timeout=2.0,
        )

        assert outcome.state is TurnState.CANCELLED
        assert history[-1].content == "Hel"
        assert events.types == ["start", "delta", "cancelled"]
        assert events.events[-1].reason == "user pressed stop"
        assert stub.closed is True
        assert outcome.result is None

    @pytest.mark.asyncio
    async def test_cancel_after_completion_is_a_noop(self, credentials, inline_sandbox):
        orchestrator = _orchestrator(StubProvider.chunks("done"), credentials, inline_sandbox)
        request = GenerationRequest(primary_skill=_skill(), history=[user_message("hello")])

        outcome = await orchestrator.run_turn(request)

        assert orchestrator.cancel() is False
        assert request.token.cancelled is False
        assert outcome.state is TurnState.DONE

    @pytest.mark.asyncio
    async def test_cancel_twice_is_idempotent(self, credentials, inline_sandbox):
        stub = StubProvider.chunks("a", hang=True)
        results = []

        async def cancel_twice(event):
            results.append(orchestrator.cancel())
            results.append(orchestrator.cancel())

        orchestrator = _orchestrator(stub, credentials, inline_sandbox)
        outcome = await orchestrator.run_turn(
            GenerationRequest(primary_skill=_skill(), history=[user_message("hi")]),
            RecordingEvents(on_chunk=cancel_twice),
        )

        assert results == [True, False]
        assert outcome.state is TurnState.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_before_dispatch_makes_no_provider_call(self, credentials, inline_sandbox):
        stub = StubProvider.chunks("never")
        request = GenerationRequest(primary_skill=_skill(), history=[user_message("hi")])
        request.token.cancel()

        outcome = await _orchestrator(stub, credentials, inline_sandbox).run_turn(request)

        assert outcome.state is TurnState.CANCELLED
        assert stub.calls == []
        assert outcome.message.content == ""

    @pytest.mark.asyncio
    async def test_provider_error_mid_stream(self, credentials, inline_sandbox):
        stub = StubProvider.chunks("partial", error=CredentialError.rejected("OpenAI", "bad key"))
        events = RecordingEvents()
        history = [user_message("hi")]

        outcome = await _orchestrator(stub, credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=_skill(), history=history), events
        )

        assert outcome.state is TurnState.ERRORED
        assert history[-1].content == (
            "Error: API call failed: The provided OpenAI API Key is not valid. (bad key)"
        )
        assert len(history) == 2
        assert events.types == ["start", "delta", "error"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_reported(self, credentials, inline_sandbox):
        stub = StubProvider(error=RuntimeError("kaboom"))
        outcome = await _orchestrator(stub, credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=_skill(), history=[user_message("hi")])
        )
        assert outcome.state is TurnState.ERRORED
        assert outcome.error == "kaboom"
        assert outcome.error_type == "RuntimeError"

    @pytest.mark.asyncio
    async def test_idle_stream_times_out(self, credentials, inline_sandbox):
        stub = StubProvider.chunks("slow", hang=True)
        outcome = await _orchestrator(stub, credentials, inline_sandbox, idle_timeout=0.05).run_turn(
            GenerationRequest(primary_skill=_skill(), history=[user_message("hi")])
        )

        assert outcome.state is TurnState.ERRORED
        assert outcome.error_type == "TransportError"
        assert outcome.error.startswith("Connection stalled")
        assert outcome.message.content.startswith("Error: Connection stalled")

    @pytest.mark.asyncio
    async def test_grounding_is_recorded_once(self, credentials, inline_sandbox):
        first = [GroundingChunk(uri="https://a.test", title="A")]
        second = [GroundingChunk(uri="https://b.test", title="B")]
        stub = StubProvider([
            StreamPart(chunk="x", grounding_chunks=first),
            StreamPart(chunk="y", grounding_chunks=second),
        ])
        events = RecordingEvents()

        outcome = await _orchestrator(stub, credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=_skill(provider="google_search"), history=[user_message("hi")]),
            events,
        )

        assert events.types.count("grounding") == 1
        assert outcome.result.grounding_chunks == first
        assert outcome.message.grounding_chunks == first

    @pytest.mark.asyncio
    async def test_second_turn_while_running_is_rejected(self, credentials, inline_sandbox):
        stub = StubProvider.chunks("a", hang=True)
        orchestrator = _orchestrator(stub, credentials, inline_sandbox)
        started = asyncio.Event()

        async def on_chunk(event):
            started.set()

        first = asyncio.ensure_future(orchestrator.run_turn(
            GenerationRequest(primary_skill=_skill(), history=[user_message("one")]),
            RecordingEvents(on_chunk=on_chunk),
        ))
        await asyncio.wait_for(started.wait(), timeout=1.0)

        with pytest.raises(TurnInProgressError):
            await orchestrator.run_turn(GenerationRequest(primary_skill=_skill(), history=[user_message("two")]))

        orchestrator.cancel()
        outcome = await asyncio.wait_for(first, timeout=1.0)
        assert outcome.state is TurnState.CANCELLED
        assert orchestrator.active_turn is None

    @pytest.mark.asyncio
    async def test_metadata(self, credentials, inline_sandbox, general_skill, python_skill):
        outcome = await _orchestrator(StubProvider.chunks("ok"), credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=python_skill, history=[user_message("hi")],
                              active_skills=[python_skill, general_skill])
        )
        assert outcome.metadata["skills_used"] == ["Python Expert", "General Conversation"]
        assert outcome.metadata["states"] == ["idle", "preprocessing", "streaming", "postprocessing", "done"]
        assert outcome.message.skill_packs_used == ["Python Expert", "General Conversation"]

    @pytest.mark.asyncio
    async def test_events_carry_turn_id(self, credentials, inline_sandbox):
        events = RecordingEvents()
        outcome = await _orchestrator(StubProvider.chunks("a", "b"), credentials, inline_sandbox).run_turn(
            GenerationRequest(primary_skill=_skill(), history=[user_message("hi")]), events
        )
        assert {event.request_id for event in events.events} == {outcome.metadata["turn_id"]}
