from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from clubchat.chat.service import ChatService
from clubchat.core.auth import require_roles
from clubchat.core.realtime import RoomBroadcaster, broadcaster
from clubchat.db.session import get_db
from clubchat.models.message import MessageType
from clubchat.models.user import Roles, User
from clubchat.schemas.chat import (
    CreateDirectRequest,
    CreateGroupRequest,
    GroupMembersRequest,
    ReactRequest,
    SendMessageRequest,
    SendThreadMessage,
)
from clubchat.schemas.realtime import OutgoingMessage
from clubchat.services.notification import NotificationService
from clubchat.utils.logger import get_logger

logger = get_logger("routes.chat")

router = APIRouter()

golfer_or_club = require_roles(Roles.GOLFER, Roles.GOLF_CLUB)


def get_broadcaster() -> RoomBroadcaster:
    return broadcaster


def get_chat_service(
    db: Session = Depends(get_db),
    rooms: RoomBroadcaster = Depends(get_broadcaster),
) -> ChatService:
    return ChatService(db, notifier=NotificationService(db, publisher=rooms.to_user))


def envelope(message: str, data: Any = None) -> dict:
    return {"success": True, "message": message, "data": jsonable_encoder(data, by_alias=True)}


@router.get("/threads")
async def list_threads(
    type: Optional[str] = Query(None, description="direct or group"),
    current_user: User = Depends(golfer_or_club),
    service: ChatService = Depends(get_chat_service),
):
    """List the threads the current user belongs to, most recently active first."""
    threads = await service.list_threads_for_user(current_user.id, type)
    return envelope("Threads fetched.", threads)


@router.get("/threads/club/{club_id}")
async def list_club_threads(
    club_id: str,
    current_user: User = Depends(golfer_or_club),
    service: ChatService = Depends(get_chat_service),
):
    threads = await service.list_threads_for_club(current_user.id, club_id)
    return envelope("Club threads fetched.", threads)


@router.get("/threads/{thread_id}/messages")
async def list_messages(
    thread_id: str,
    current_user: User = Depends(golfer_or_club),
    service: ChatService = Depends(get_chat_service),
):
    messages = await service.list_messages(current_user.id, thread_id)
    return envelope("Messages fetched.", messages)


@router.post("/threads/direct")
async def ensure_direct_thread(
    payload: CreateDirectRequest,
    current_user: User = Depends(require_roles(Roles.GOLFER)),
    service: ChatService = Depends(get_chat_service),
):
    """Return the direct thread with another golfer, creating it on first use."""
    thread = await service.ensure_direct_thread(current_user.id, payload.golfer_user_id)
    return envelope("Direct thread ready.", thread)


@router.post("/threads/group", status_code=status.HTTP_201_CREATED)
async def create_group(
    payload: CreateGroupRequest,
    current_user: User = Depends(golfer_or_club),
    service: ChatService = Depends(get_chat_service),
):
    thread = await service.create_group(current_user.id, payload)
    return envelope("Group created.", thread)


@router.post("/threads/{thread_id}/members")
async def add_group_members(
    thread_id: str,
    payload: GroupMembersRequest,
    current_user: User = Depends(golfer_or_club),
    service: ChatService = Depends(get_chat_service),
):
    thread = await service.add_group_members(current_user.id, thread_id, payload.member_user_ids)
    return envelope("Members added.", thread)


@router.delete("/threads/{thread_id}/members/{user_id}")
async def remove_group_member(
    thread_id: str,
    user_id: str,
    current_user: User = Depends(golfer_or_club),
    service: ChatService = Depends(get_chat_service),
):
    thread = await service.remove_group_member(current_user.id, thread_id, user_id)
    return envelope("Member removed.", thread)


@router.post("/threads/{thread_id}/messages")
async def send_message(
    thread_id: str,
    payload: SendMessageRequest,
    current_user: User = Depends(golfer_or_club),
    service: ChatService = Depends(get_chat_service),
    rooms: RoomBroadcaster = Depends(get_broadcaster),
):
    """Send over REST; sockets joined to the thread still get ``new-msg``."""
    result = await service.send_message_to_thread(
        current_user.id,
        SendThreadMessage(thread_id=thread_id, **payload.model_dump()),
    )

    media_urls = [result.message.image_url] if result.message.type == MessageType.image.value and result.message.image_url else []
    try:
        await rooms.to_thread(thread_id, "new-msg", OutgoingMessage.from_message(result.message, media_urls).to_wire())
    except Exception:
        logger.exception("Broadcast of message %s to %s failed", result.message.id, thread_id)

    return envelope("Message sent.", result)


@router.patch("/messages/{message_id}/reaction")
async def react_to_message(
    message_id: str,
    payload: ReactRequest,
    current_user: User = Depends(golfer_or_club),
    service: ChatService = Depends(get_chat_service),
):
    result = await service.react_to_message(current_user.id, message_id, payload.emoji)
    message = "Reaction removed." if result.action == "removed" else "Reaction updated."
    return envelope(message, result)
