"""Main client interface for the SuperModel SDK."""

import asyncio
import functools
import logging
from typing import Any, AsyncIterator, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from ..errors import ConfigurationError
from ..models.conversation_types import Message, TurnRole, assistant_message, user_message
from ..models.credentials import ProviderCredentials
from ..models.events import StreamEvent
from ..models.generation import GenerationRequest, TurnOutcome, TurnState
from ..models.skill import Skill
from ..orchestration.orchestrator import StreamingOrchestrator
from ..providers.health import ConnectionCheck, check_local_connection
from ..scripting.hooks import postprocess, preprocess
from ..routing.recommender import recent_context
from ..skills.catalog import SkillCatalog
from ..skills.resolver import ResolutionSource, SkillResolver
from ..streaming.manager import EventManager


logger = logging.getLogger(__name__)

SUGGESTION_TEMPLATE = "It looks like the '{name}' skill could help with this. Would you like to use it?"

_STREAM_END = object()


class ChatOutcome(BaseModel):
    """
    Result of a send/regenerate action.

    Exactly one of these shapes:
    - a generated turn: ``turn`` is set
    - a suggestion (auto-pilot off): ``recommendation`` is set, no turn ran
    - a resolution failure: ``error`` is set, no turn ran
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    message: Optional[Message] = None
    turn: Optional[TurnOutcome] = None
    recommendation: Optional[Skill] = None
    source: Optional[ResolutionSource] = None
    error: Optional[str] = None

    @property
    def state(self) -> Optional[TurnState]:
        if self.turn is not None:
            return self.turn.state
        if self.error is not None:
            return TurnState.ERRORED
        return None

    @property
    def is_suggestion(self) -> bool:
        return self.recommendation is not None and self.turn is None


class SupermodelClient:
    """High-level client: skill resolution plus one orchestrated turn per message."""

    def __init__(
        self,
        credentials: Optional[ProviderCredentials] = None,
        catalog: Optional[SkillCatalog] = None,
        orchestrator: Optional[StreamingOrchestrator] = None,
        resolver: Optional[SkillResolver] = None,
        auto_pilot: bool = True,
    ):
        """
        Initialize the client.

        Args:
            credentials: Provider credentials (defaults to the environment)
            catalog: Skills available to this user
            orchestrator: Turn orchestrator; built from ``credentials`` if omitted
            resolver: Skill resolver; uses the Gemini router if omitted
            auto_pilot: Run recommended skills directly instead of suggesting them
        """
        self.credentials = credentials or ProviderCredentials.from_env()
        self.catalog = catalog or SkillCatalog()
        self.orchestrator = orchestrator or StreamingOrchestrator(credentials=self.credentials)
        self.resolver = resolver or SkillResolver()
        self.auto_pilot = auto_pilot

    async def send_message(
        self,
        history: List[Message],
        content: str,
        image_data: Optional[str] = None,
        active_skills: Optional[Sequence[Skill]] = None,
        skip_recommendation: bool = False,
        override_skill: Optional[Skill] = None,
        events: Optional[EventManager] = None,
        conversation_id: Optional[str] = None,
    ) -> ChatOutcome:
        """
        Append a user message to ``history`` and answer it.

        Args:
            history: The conversation's live message list (mutated in place)
            content: User text
            image_data: Optional data-URI image sent with the text
            active_skills: Skills to use; defaults to the catalog's active ones
            skip_recommendation: Do not consult the router when nothing is active
            override_skill: Use exactly this skill for the turn
            events: Subscriber for streaming events
            conversation_id: Caller's id for the conversation, reported in
                the turn metadata

        Returns:
            ChatOutcome with the assistant message that was appended
        """
        history.append(user_message(content, image_data))

        if override_skill is not None:
            active = [override_skill]
        elif active_skills is not None:
            active = list(active_skills)
        else:
            active = self.catalog.active()

        try:
            resolved = await self.resolver.resolve(
                content, history, active, self.catalog, self.credentials, skip_recommendation
            )
        except ConfigurationError as e:
            message = assistant_message(f"Error: {e.user_message}")
            history.append(message)
            return ChatOutcome(message=message, error=e.user_message)

        if resolved.is_recommendation and not self.auto_pilot:
            message = assistant_message(SUGGESTION_TEMPLATE.format(name=resolved.primary.name))
            history.append(message)
            return ChatOutcome(message=message, recommendation=resolved.primary, source=resolved.source)

        request = GenerationRequest(
            primary_skill=resolved.primary,
            history=history,
            active_skills=resolved.active,
            conversation_id=conversation_id,
        )
        outcome = await self.orchestrator.run_turn(request, events)
        return ChatOutcome(message=outcome.message, turn=outcome, source=resolved.source)

    async def stream_message(
        self,
        history: List[Message],
        content: str,
        **kwargs: Any,
    ) -> AsyncIterator[Union[StreamEvent, ChatOutcome]]:
        """Like ``send_message`` but yields stream events as they happen.

        The final item is the ``ChatOutcome``. Closing the iterator early
        stops the turn.
        """
        queue: asyncio.Queue = asyncio.Queue()

        async def forward(event: StreamEvent) -> None:
            await queue.put(event)

        events = EventManager.forwarding(forward)
        task = asyncio.ensure_future(self.send_message(history, content, events=events, **kwargs))
        task.add_done_callback(lambda _: queue.put_nowait(_STREAM_END))

        try:
            while True:
                item = await queue.get()
                if item is _STREAM_END:
                    break
                yield item
            yield task.result()
        finally:
            if not task.done():
                if not self.stop("stream consumer went away"):
                    task.cancel()
                await asyncio.wait({task})

    def stop(self, reason: Optional[str] = None) -> bool:
        """Cancel the in-flight turn; a no-op when nothing is running."""
        return self.orchestrator.cancel(reason or "stopped by user")

    async def regenerate(
        self,
        history: List[Message],
        events: Optional[EventManager] = None,
        **kwargs: Any,
    ) -> Optional[ChatOutcome]:
        """
        Re-answer the last user message.

        Drops the last assistant message, then re-sends the last user message
        (with its image). Returns None when there is no user message.
        """
        last_user_index = None
        for index in range(len(history) - 1, -1, -1):
            if history[index].role == TurnRole.USER.value:
                last_user_index = index
                break
        if last_user_index is None:
            return None

        for index in range(len(history) - 1, last_user_index, -1):
            if history[index].role == TurnRole.ASSISTANT.value:
                del history[index]
                break

        last_user = history.pop(last_user_index)
        return await self.send_message(
            history, last_user.content, image_data=last_user.image_data, events=events, **kwargs
        )

    async def test_skill(self, skill: Skill, input_text: str) -> str:
        """
        Run a skill once without streaming: preprocess, complete, postprocess.

        Errors from any step propagate to the caller.
        """
        sandbox = self.orchestrator.sandbox
        loop = asyncio.get_running_loop()

        processed = await loop.run_in_executor(None, functools.partial(preprocess, skill, input_text, sandbox))
        adapter = self.orchestrator.registry.for_skill(skill)
        response = await adapter.complete(skill, [user_message(processed)], self.credentials)
        return await loop.run_in_executor(None, functools.partial(postprocess, skill, response, sandbox))

    async def recommend(self, prompt: str, history: Optional[List[Message]] = None) -> Optional[str]:
        """Ask the router which catalog skill fits ``prompt``."""
        context = recent_context(list(history or []) + [user_message(prompt)])
        return await self.resolver.router.recommend(
            prompt, context, self.catalog.summaries(), self.credentials
        )

    async def check_local_connection(self, url: Optional[str] = None) -> ConnectionCheck:
        """Check the local model server (defaults to the configured URL)."""
        return await check_local_connection(url or self.credentials.local_base_url)
