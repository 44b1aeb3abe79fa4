"""Payloads of the Socket.IO chat protocol."""
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator

from clubchat.schemas.base import CamelModel
from clubchat.schemas.chat import MessageResponse, ReactionResponse
from clubchat.schemas.user import UserProfile


def _strip(value):
    if isinstance(value, str):
        return value.strip() or None
    return value


class JoinPayload(CamelModel):
    conv_id: Optional[str] = None

    @field_validator("conv_id", mode="before")
    @classmethod
    def strip_conv_id(cls, value):
        return _strip(value)


class SendMessagePayload(CamelModel):
    conv_id: Optional[str] = None
    text: Optional[str] = None
    media_url: Optional[str] = None
    media_urls: Optional[list] = None
    # Client correlation id for optimistic sends; echoed back untouched
    temp_id: Optional[Any] = None

    @field_validator("conv_id", "text", "media_url", mode="before")
    @classmethod
    def strip_fields(cls, value):
        return _strip(value)

    def resolved_media_urls(self) -> List[str]:
        urls = [u.strip() for u in (self.media_urls or []) if isinstance(u, str) and u.strip()]
        if urls:
            return urls
        return [self.media_url] if self.media_url else []


class ReactMessagePayload(CamelModel):
    message_id: Optional[str] = None
    emoji: Optional[str] = None

    @field_validator("message_id", "emoji", mode="before")
    @classmethod
    def strip_fields(cls, value):
        return _strip(value)


class OutgoingMessage(CamelModel):
    id: str
    conv_id: str
    text: str = ""
    media_urls: List[str] = []
    sender_id: str
    sender: Optional[UserProfile] = None
    mentioned_user_ids: List[str] = []
    reactions: List[ReactionResponse] = []
    sent_at: datetime
    temp_id: Optional[Any] = None

    @classmethod
    def from_message(cls, message: MessageResponse, media_urls: List[str], temp_id: Any = None):
        return cls(
            id=message.id,
            conv_id=message.thread_id,
            text=message.text or "",
            media_urls=media_urls,
            sender_id=message.sender_user_id,
            sender=message.sender,
            mentioned_user_ids=message.mentioned_user_ids,
            reactions=message.reactions,
            sent_at=message.created_at,
            temp_id=temp_id,
        )

    def to_wire(self) -> dict:
        data = self.model_dump(mode="json", by_alias=True)
        if self.temp_id is None:
            data.pop("tempId")
        return data


class ReactionBroadcast(CamelModel):
    action: Literal["set", "removed"]
    message_id: str
    conv_id: str
    reactions: List[ReactionResponse] = Field(default_factory=list)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
