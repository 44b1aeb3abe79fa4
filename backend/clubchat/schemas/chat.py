import json
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator

from clubchat.schemas.base import CamelModel
from clubchat.schemas.user import UserProfile


class ReactionResponse(CamelModel):
    user_id: str
    emoji: str
    reacted_at: datetime


class MessageResponse(CamelModel):
    id: str
    thread_id: str
    sender_user_id: str
    sender: Optional[UserProfile] = None
    type: str
    text: Optional[str] = None
    image_url: Optional[str] = None
    mentioned_user_ids: List[str] = []
    reactions: List[ReactionResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None


class ThreadSummary(CamelModel):
    id: str
    type: str
    club_id: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    owner_user_id: Optional[str] = None
    member_user_ids: List[str]
    member_count: int
    direct_peer: Optional[UserProfile] = None
    last_message: Optional[MessageResponse] = None
    created_at: datetime
    updated_at: datetime


class SendMessageResult(CamelModel):
    thread: ThreadSummary
    message: MessageResponse


class ReactionResult(CamelModel):
    action: Literal["set", "removed"]
    message: MessageResponse


def _normalize_id_list(value: Any) -> Any:
    """Accept a list, a JSON array string or a comma separated string of ids."""
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = raw.split(",")
        if not isinstance(parsed, list):
            parsed = str(parsed).split(",")
        value = parsed
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return value


class CreateGroupRequest(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    club_id: Optional[str] = None
    avatar_url: Optional[str] = None
    member_user_ids: List[str] = []

    @field_validator("member_user_ids", mode="before")
    @classmethod
    def normalize_member_ids(cls, value):
        return _normalize_id_list(value)


class CreateDirectRequest(CamelModel):
    golfer_user_id: str = Field(..., min_length=1)


class GroupMembersRequest(CamelModel):
    member_user_ids: List[str] = Field(..., min_length=1)

    @field_validator("member_user_ids", mode="before")
    @classmethod
    def normalize_member_ids(cls, value):
        return _normalize_id_list(value)


class SendMessageRequest(CamelModel):
    # Validated by the chat service so unknown types surface as BadRequest
    type: str = "text"
    text: Optional[str] = None
    image_url: Optional[str] = None


class SendThreadMessage(SendMessageRequest):
    thread_id: str


class ReactRequest(CamelModel):
    emoji: Optional[str] = None
