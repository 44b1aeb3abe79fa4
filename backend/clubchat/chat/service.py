from typing import List, Optional

from sqlalchemy.orm import Session

from clubchat.chat.access import AccessControl, ClubStaffViewer
from clubchat.chat.enrichment import ResponseBuilder
from clubchat.chat.mentions import resolve_mentions
from clubchat.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from clubchat.models.message import MAX_EMOJI_LENGTH, MessageType
from clubchat.models.thread import ChatThread, ThreadType
from clubchat.repositories.chat import ChatMessageRepository, ChatThreadRepository
from clubchat.schemas.chat import (
    CreateGroupRequest,
    MessageResponse,
    ReactionResult,
    SendMessageResult,
    SendThreadMessage,
    ThreadSummary,
)
from clubchat.services.club import ClubMembershipService
from clubchat.services.follow import FollowService
from clubchat.services.notification import NotificationEvent, NotificationService, NotificationType
from clubchat.services.profile import ProfileService
from clubchat.utils.logger import get_logger

logger = get_logger("chat.service")


class ChatService:
    def __init__(
        self,
        db: Session,
        profiles: Optional[ProfileService] = None,
        follows: Optional[FollowService] = None,
        clubs: Optional[ClubMembershipService] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.db = db
        self.threads = ChatThreadRepository(db)
        self.messages = ChatMessageRepository(db)
        self.profiles = profiles or ProfileService(db)
        self.follows = follows or FollowService(db)
        self.clubs = clubs or ClubMembershipService(db)
        self.notifier = notifier or NotificationService(db)
        self.access = AccessControl(self.profiles, self.follows, self.clubs)

    def _responses(self) -> ResponseBuilder:
        return ResponseBuilder(self.profiles, self.messages)

    def _get_thread(self, thread_id: str) -> ChatThread:
        thread = self.threads.find_by_id(thread_id)
        if not thread:
            raise NotFoundError("Thread not found.")
        return thread

    def _get_group(self, thread_id: str) -> ChatThread:
        thread = self.threads.find_by_id(thread_id)
        if not thread or thread.type != ThreadType.GROUP:
            raise NotFoundError("Group not found.")
        return thread

    @staticmethod
    def _validate_message_payload(message_type: str, text: Optional[str], image_url: Optional[str]) -> MessageType:
        try:
            kind = MessageType(message_type)
        except ValueError:
            raise BadRequestError("Message type must be `text` or `image`.")

        if kind == MessageType.text and not (text or "").strip():
            raise BadRequestError("Text message requires non-empty text.")
        if kind == MessageType.image and not (image_url or "").strip():
            raise BadRequestError("Image message requires imageUrl.")
        return kind

    # Threads

    async def get_thread_for_member(self, user_id: str, thread_id: str) -> ChatThread:
        """Raise unless ``user_id`` belongs to the thread; used to gate room joins."""
        thread = self._get_thread(thread_id)
        self.access.assert_thread_member(thread, user_id)
        return thread

    async def ensure_direct_thread(self, owner_user_id: str, target_user_id: str) -> ThreadSummary:
        if owner_user_id == target_user_id:
            raise BadRequestError("You cannot start a conversation with yourself.")
        if not await self.profiles.exists(target_user_id):
            raise NotFoundError("User not found.")

        await self.access.assert_can_direct_message(owner_user_id, target_user_id)

        thread = self.threads.find_direct_between(owner_user_id, target_user_id)
        if not thread:
            thread = self.threads.create_direct(owner_user_id, target_user_id)
            logger.info("Created direct thread %s for %s", thread.id, thread.direct_key)

        return await self._responses().thread(thread, viewer_user_id=owner_user_id)

    async def create_group(self, owner_user_id: str, payload: CreateGroupRequest) -> ThreadSummary:
        name = (payload.name or "").strip()
        if not name:
            raise BadRequestError("Group name is required.")

        creator = await self.access.resolve_group_creator(owner_user_id, payload.club_id)
        draft = await self.access.build_group_draft(
            creator, name, payload.member_user_ids, payload.avatar_url
        )

        thread = self.threads.create_group(
            owner_user_id=owner_user_id,
            name=draft.name,
            member_user_ids=draft.member_user_ids,
            avatar_url=draft.avatar_url,
            club_id=draft.club_id,
        )
        logger.info("Group %s created by %s with %d members", thread.id, owner_user_id, len(draft.member_user_ids))

        await self._notify_added(owner_user_id, thread, draft.member_user_ids)
        return await self._responses().thread(thread, viewer_user_id=owner_user_id)

    async def add_group_members(self, owner_user_id: str, thread_id: str, member_user_ids: List[str]) -> ThreadSummary:
        thread = self._get_group(thread_id)
        if thread.owner_user_id != owner_user_id:
            raise ForbiddenError("Only group owner can add members.")

        requested = [uid for uid in dict.fromkeys(member_user_ids or []) if uid]
        if not requested:
            raise BadRequestError("At least one member is required.")

        existing = set(thread.member_user_ids)
        added = [uid for uid in requested if uid not in existing]
        for user_id in added:
            if not await self.profiles.exists(user_id):
                raise NotFoundError("User not found.")
        if added:
            await self.access.assert_may_add_members(owner_user_id, thread.club_id, added)

        updated = self.threads.add_members(thread_id, added)
        if not updated:
            raise NotFoundError("Group not found.")

        await self._notify_added(owner_user_id, updated, added)
        return await self._responses().thread(updated, viewer_user_id=owner_user_id)

    async def remove_group_member(self, owner_user_id: str, thread_id: str, member_user_id: str) -> ThreadSummary:
        thread = self._get_group(thread_id)
        if thread.owner_user_id != owner_user_id:
            raise ForbiddenError("Only group owner can remove members.")
        if member_user_id == owner_user_id:
            raise BadRequestError("Owner cannot be removed.")

        updated = self.threads.remove_member(thread_id, member_user_id)
        if not updated:
            raise NotFoundError("Group not found.")
        return await self._responses().thread(updated, viewer_user_id=owner_user_id)

    async def list_threads_for_user(self, user_id: str, thread_type: Optional[str] = None) -> List[ThreadSummary]:
        if thread_type and thread_type not in ThreadType.ALL:
            raise BadRequestError("Invalid thread type. Use `direct` or `group`.")

        threads = self.threads.find_threads_for_user(user_id, thread_type)
        responses = self._responses()
        return [await responses.thread(thread, viewer_user_id=user_id) for thread in threads]

    async def list_threads_for_club(self, viewer_user_id: str, club_id: str) -> List[ThreadSummary]:
        viewer = await self.access.resolve_club_viewer(viewer_user_id, club_id)

        if isinstance(viewer, ClubStaffViewer):
            threads = self.threads.find_club_groups(club_id)
        else:
            threads = self.threads.find_club_groups(club_id, member_user_id=viewer_user_id)
            roster_ids = set(viewer.roster.all_user_ids())
            for direct in self.threads.find_threads_for_user(viewer_user_id, ThreadType.DIRECT):
                if direct.peer_of(viewer_user_id) in roster_ids:
                    threads.append(direct)
            threads.sort(key=lambda t: t.updated_at, reverse=True)

        responses = self._responses()
        return [await responses.thread(thread, viewer_user_id=viewer_user_id) for thread in threads]

    # Messages

    async def send_message_to_thread(self, sender_user_id: str, payload: SendThreadMessage) -> SendMessageResult:
        thread = self._get_thread(payload.thread_id)
        self.access.assert_thread_member(thread, sender_user_id)

        if thread.type == ThreadType.DIRECT:
            # The follow relationship may have been revoked since the thread was created
            await self.access.assert_can_direct_message(sender_user_id, thread.peer_of(sender_user_id))

        kind = self._validate_message_payload(payload.type, payload.text, payload.image_url)
        text = (payload.text or "").strip() or None
        image_url = (payload.image_url or "").strip() or None
        if kind == MessageType.text:
            image_url = None

        member_ids = thread.member_user_ids
        mentioned = await resolve_mentions(text or "", member_ids, self.profiles.resolve_handles)

        message = self.messages.create(
            thread_id=thread.id,
            sender_user_id=sender_user_id,
            message_type=kind,
            text=text,
            image_url=image_url,
            mentioned_user_ids=mentioned,
        )
        self.threads.touch(thread.id)

        await self.notifier.notify_many(
            NotificationEvent(
                recipient_user_id=user_id,
                actor_user_id=sender_user_id,
                type=NotificationType.CHAT_MENTION,
                message="You were mentioned in a chat message.",
                ref_id=message.id,
                payload={"threadId": thread.id, "messageId": message.id},
            )
            for user_id in mentioned
            if user_id != sender_user_id
        )

        responses = self._responses()
        thread = self._get_thread(thread.id)
        return SendMessageResult(
            thread=await responses.thread(thread, last_message=message, viewer_user_id=sender_user_id),
            message=await responses.message(message),
        )

    async def list_messages(self, user_id: str, thread_id: str) -> List[MessageResponse]:
        thread = self._get_thread(thread_id)
        self.access.assert_thread_member(thread, user_id)

        responses = self._responses()
        return [await responses.message(m) for m in self.messages.find_by_thread(thread.id)]

    async def react_to_message(self, user_id: str, message_id: str, emoji: Optional[str]) -> ReactionResult:
        emoji = (emoji or "").strip()
        if not emoji:
            raise BadRequestError("Emoji is required.")
        if len(emoji) > MAX_EMOJI_LENGTH:
            raise BadRequestError(f"Emoji must be at most {MAX_EMOJI_LENGTH} characters.")

        message = self.messages.find_by_id(message_id)
        if not message:
            raise NotFoundError("Message not found.")
        thread = self.threads.find_by_id(message.thread_id)
        if not thread:
            raise NotFoundError("Thread not found.")
        self.access.assert_thread_member(thread, user_id)

        action = self.messages.toggle_reaction(message.id, user_id, emoji)
        message = self.messages.find_by_id(message_id)

        if action == "set" and message.sender_user_id != user_id:
            await self.notifier.notify(NotificationEvent(
                recipient_user_id=message.sender_user_id,
                actor_user_id=user_id,
                type=NotificationType.CHAT_REACTION,
                message=f"Someone reacted {emoji} to your message.",
                ref_id=message.id,
                payload={"threadId": thread.id, "messageId": message.id, "emoji": emoji},
            ))

        return ReactionResult(action=action, message=await self._responses().message(message))

    async def _notify_added(self, actor_user_id: str, thread: ChatThread, member_user_ids: List[str]) -> None:
        await self.notifier.notify_many(
            NotificationEvent(
                recipient_user_id=user_id,
                actor_user_id=actor_user_id,
                type=NotificationType.CHAT_GROUP_ADDED,
                message=f"You were added to {thread.name or 'a group'}.",
                ref_id=thread.id,
                payload={"threadId": thread.id},
            )
            for user_id in member_user_ids
            if user_id != actor_user_id
        )
