"""Builds thread and message responses, resolving profiles on a best-effort basis."""
import functools
from typing import Dict, Optional

from clubchat.models.message import ChatMessage
from clubchat.models.thread import ChatThread, ThreadType
from clubchat.repositories.chat import ChatMessageRepository
from clubchat.schemas.chat import MessageResponse, ReactionResponse, ThreadSummary
from clubchat.schemas.user import UserProfile
from clubchat.services.profile import ProfileService
from clubchat.utils.logger import get_logger

logger = get_logger("chat.enrichment")


def best_effort(default=None):
    """Run an async call, log any failure and return ``default`` instead."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as exc:
                logger.warning("%s failed, using %r: %s", func.__name__, default, exc)
                return default

        return wrapper

    return decorator


class ResponseBuilder:
    """One instance per service call; profiles are cached for its lifetime."""

    def __init__(self, profiles: ProfileService, messages: ChatMessageRepository):
        self.profiles = profiles
        self.messages = messages
        self._profiles: Dict[str, UserProfile] = {}

    @best_effort()
    async def profile(self, user_id: Optional[str]) -> Optional[UserProfile]:
        if not user_id:
            return None
        if user_id not in self._profiles:
            self._profiles[user_id] = await self.profiles.get_profile(user_id)
        return self._profiles[user_id]

    async def message(self, message: ChatMessage) -> MessageResponse:
        return MessageResponse(
            id=message.id,
            thread_id=message.thread_id,
            sender_user_id=message.sender_user_id,
            sender=await self.profile(message.sender_user_id),
            type=message.type.value if hasattr(message.type, "value") else str(message.type),
            text=message.text,
            image_url=message.image_url,
            mentioned_user_ids=list(message.mentioned_user_ids or []),
            reactions=[
                ReactionResponse(user_id=r.user_id, emoji=r.emoji, reacted_at=r.reacted_at)
                for r in message.reactions
            ],
            created_at=message.created_at,
            updated_at=message.updated_at,
        )

    async def thread(
        self,
        thread: ChatThread,
        last_message: Optional[ChatMessage] = None,
        viewer_user_id: Optional[str] = None,
    ) -> ThreadSummary:
        if last_message is None:
            last_message = self.messages.find_last_by_thread(thread.id)

        direct_peer = None
        if thread.type == ThreadType.DIRECT and viewer_user_id:
            direct_peer = await self.profile(thread.peer_of(viewer_user_id))

        member_ids = thread.member_user_ids
        return ThreadSummary(
            id=thread.id,
            type=thread.type,
            club_id=thread.club_id,
            name=thread.name,
            avatar_url=thread.avatar_url,
            owner_user_id=thread.owner_user_id,
            member_user_ids=member_ids,
            member_count=len(member_ids),
            direct_peer=direct_peer,
            last_message=await self.message(last_message) if last_message else None,
            created_at=thread.created_at,
            updated_at=thread.updated_at,
        )
