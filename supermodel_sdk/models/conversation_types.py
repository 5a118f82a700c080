import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


_DATA_URI_RE = re.compile(r"^data:(image/[^;]+);base64,(.+)$", re.DOTALL)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TurnRole(str, Enum):
    """Conversation turn roles."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class GroundingChunk(BaseModel):
    """Web source backing a search-grounded answer."""
    uri: str
    title: str = ""


class Message(BaseModel):
    """A single conversation message as seen by the pipeline."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(default_factory=lambda: f"msg-{uuid.uuid4().hex[:12]}")
    role: TurnRole
    content: str = ""
    image_data: Optional[str] = Field(
        None,
        description="Base64 image with data URI scheme (data:image/png;base64,...)"
    )
    grounding_chunks: Optional[List[GroundingChunk]] = None
    skill_packs_used: List[str] = Field(default_factory=list)
    tokens_in: Optional[int] = None
    tokens_out: Optional[int] = None
    cost: Optional[float] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def is_chat_turn(self) -> bool:
        """True for messages that are forwarded to providers (user/assistant)."""
        return self.role in (TurnRole.USER.value, TurnRole.ASSISTANT.value)

    def inline_image(self) -> Optional[Tuple[str, str]]:
        """Split ``image_data`` into ``(mime_type, base64_data)``.

        Returns None when there is no image or the data URI cannot be parsed.
        """
        if not self.image_data:
            return None
        match = _DATA_URI_RE.match(self.image_data)
        if not match:
            return None
        return match.group(1), match.group(2)


def user_message(content: str, image_data: Optional[str] = None) -> Message:
    return Message(role=TurnRole.USER, content=content, image_data=image_data)


def assistant_message(content: str = "", skill_packs_used: Optional[List[str]] = None) -> Message:
    return Message(
        role=TurnRole.ASSISTANT,
        content=content,
        skill_packs_used=list(skill_packs_used or []),
    )
