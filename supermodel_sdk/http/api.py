"""FastAPI HTTP endpoints for the SuperModel SDK.

This module exposes chat streaming, skill recommendation and skill testing
over HTTP. It requires FastAPI to be installed (via the 'http' extra).
"""

import json
from typing import List, Optional

try:
    from fastapi import APIRouter, Depends, HTTPException
    from fastapi.responses import StreamingResponse
except ImportError:
    raise ImportError(
        "FastAPI is required for HTTP endpoints. "
        "Please install with: pip install supermodel-sdk[http]"
    )
from pydantic import BaseModel, Field

from ..api.client import ChatOutcome, SupermodelClient
from ..errors import ConfigurationError, ProviderError, SupermodelError
from ..models.conversation_types import Message
from ..models.skill import Skill
from ..skills.catalog import SkillCatalog


# Create router instance
router = APIRouter()

_client: Optional[SupermodelClient] = None


def get_client() -> SupermodelClient:
    """Shared client; override with ``app.dependency_overrides`` in tests."""
    global _client
    if _client is None:
        _client = SupermodelClient()
    return _client


class ChatStreamRequest(BaseModel):
    history: List[Message] = Field(default_factory=list)
    prompt: str
    skills: Optional[List[Skill]] = None
    image_data: Optional[str] = None
    active_skill_ids: Optional[List[str]] = None
    skip_recommendation: bool = False
    conversation_id: Optional[str] = None


class RecommendRequest(BaseModel):
    prompt: str
    history: List[Message] = Field(default_factory=list)


class SkillTestRequest(BaseModel):
    skill: Skill
    input: str


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _outcome_payload(outcome: ChatOutcome) -> dict:
    return {
        "type": "outcome",
        "state": outcome.state.value if outcome.state else None,
        "message": outcome.message.model_dump(mode="json") if outcome.message else None,
        "recommendation": outcome.recommendation.id if outcome.recommendation else None,
        "error": outcome.error,
    }


def _status_for(error: SupermodelError) -> int:
    if isinstance(error, ProviderError) and error.status_code:
        return error.status_code
    if isinstance(error, ConfigurationError):
        return 400
    return 502


@router.post("/chat/stream")
async def chat_stream(body: ChatStreamRequest, client: SupermodelClient = Depends(get_client)):
    """Stream one turn as Server-Sent Events; disconnecting stops the turn."""
    if client.orchestrator.active_turn is not None:
        raise HTTPException(status_code=409, detail="A turn is already in progress.")

    if body.skills is not None:
        client = SupermodelClient(
            credentials=client.credentials,
            catalog=SkillCatalog(body.skills),
            orchestrator=client.orchestrator,
            resolver=client.resolver,
            auto_pilot=client.auto_pilot,
        )

    active_skills = None
    if body.active_skill_ids is not None:
        unknown = [skill_id for skill_id in body.active_skill_ids if skill_id not in client.catalog]
        if unknown:
            raise HTTPException(status_code=404, detail=f"Unknown skill: {', '.join(unknown)}")
        active_skills = [client.catalog.get(skill_id) for skill_id in body.active_skill_ids]

    history = list(body.history)

    async def generate_stream():
        async for item in client.stream_message(
            history,
            body.prompt,
            image_data=body.image_data,
            active_skills=active_skills,
            skip_recommendation=body.skip_recommendation,
            conversation_id=body.conversation_id,
        ):
            if isinstance(item, ChatOutcome):
                yield _sse(_outcome_payload(item))
            else:
                yield _sse(item.to_dict())
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        generate_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"}
    )


@router.post("/chat/stop")
async def chat_stop(client: SupermodelClient = Depends(get_client)):
    """Stop the in-flight turn, if any."""
    return {"stopped": client.stop()}


@router.get("/skills")
async def list_skills(client: SupermodelClient = Depends(get_client)):
    """Catalog summaries in catalog order."""
    return [summary.model_dump(by_alias=True) for summary in client.catalog.summaries()]


@router.post("/skills/recommend")
async def recommend_skill(body: RecommendRequest, client: SupermodelClient = Depends(get_client)):
    """Ask the router for the best matching skill."""
    skill_id = await client.recommend(body.prompt, body.history)
    return {"skillId": skill_id}


@router.post("/skills/test")
async def run_skill_test(body: SkillTestRequest, client: SupermodelClient = Depends(get_client)):
    """Run a skill once, non-streaming, and return its output."""
    try:
        output = await client.test_skill(body.skill, body.input)
    except SupermodelError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.user_message)
    return {"output": output}


@router.get("/local/health")
async def local_health(url: Optional[str] = None, client: SupermodelClient = Depends(get_client)):
    """Check whether the local model server answers."""
    result = await client.check_local_connection(url)
    return result.model_dump()
