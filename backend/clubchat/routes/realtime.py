"""Socket.IO chat gateway: handshake auth, room joins, message and reaction fan-out."""
import functools
from contextlib import contextmanager
from typing import Any, Dict, Optional
from urllib.parse import parse_qs

import socketio
from socketio.exceptions import ConnectionRefusedError

from clubchat.chat.service import ChatService
from clubchat.core.auth import extract_bearer, verify_access_token
from clubchat.core.exceptions import AuthenticationError, BadRequestError, ChatError
from clubchat.core.realtime import RoomBroadcaster, thread_room, user_room
from clubchat.db.session import SessionLocal
from clubchat.models.message import MessageType
from clubchat.schemas.chat import SendThreadMessage
from clubchat.schemas.realtime import (
    JoinPayload,
    OutgoingMessage,
    ReactionBroadcast,
    ReactMessagePayload,
    SendMessagePayload,
)
from clubchat.services.notification import NotificationService
from clubchat.utils.logger import get_logger, safe_repr

logger = get_logger("routes.realtime")


def acknowledged(failure_message: str):
    """Turn a handler's exceptions into a ``{ok: false, error}`` acknowledgement."""

    def decorator(handler):
        @functools.wraps(handler)
        async def wrapper(self, sid, data=None):
            try:
                return await handler(self, sid, data if isinstance(data, dict) else {})
            except ChatError as exc:
                logger.info("%s rejected for %s: %s", handler.__name__, sid, exc.message)
                return {"ok": False, "error": exc.message}
            except Exception:
                logger.exception("%s failed for %s with %s", handler.__name__, sid, safe_repr(data))
                return {"ok": False, "error": failure_message}

        return wrapper

    return decorator


def handshake_token(environ: Dict[str, Any], auth: Optional[Dict[str, Any]]) -> Optional[str]:
    """Token from the auth payload, then the ``token`` query parameter, then the Authorization header."""
    if isinstance(auth, dict):
        token = auth.get("token")
        if isinstance(token, str) and token.strip():
            return extract_bearer(token) or token.strip()

    query = parse_qs(environ.get("QUERY_STRING", ""))
    for token in query.get("token", []):
        if token.strip():
            return token.strip()

    return extract_bearer(environ.get("HTTP_AUTHORIZATION"))


class ChatGateway:
    def __init__(self, server: socketio.AsyncServer, session_factory=SessionLocal, broadcaster: Optional[RoomBroadcaster] = None):
        self.server = server
        self.session_factory = session_factory
        self.broadcaster = broadcaster or RoomBroadcaster(server)

    def register(self) -> None:
        self.server.on("connect", self.on_connect)
        self.server.on("disconnect", self.on_disconnect)
        self.server.on("join", self.on_join)
        self.server.on("leave", self.on_leave)
        self.server.on("send-msg", self.on_send_msg)
        self.server.on("react-msg", self.on_react_msg)
        self.server.on("ping", self.on_ping)

    @contextmanager
    def chat_service(self):
        db = self.session_factory()
        try:
            notifier = NotificationService(db, publisher=self.broadcaster.to_user)
            yield ChatService(db, notifier=notifier)
        finally:
            db.close()

    async def current_user_id(self, sid: str) -> str:
        try:
            session = await self.server.get_session(sid)
        except KeyError:
            session = None
        if not session or not session.get("user_id"):
            raise AuthenticationError("Not authenticated")
        return session["user_id"]

    # Lifecycle

    async def on_connect(self, sid, environ, auth=None):
        token = handshake_token(environ or {}, auth)
        if not token:
            logger.info("Socket %s refused: no token", sid)
            raise ConnectionRefusedError("Authentication token required")
        try:
            payload = verify_access_token(token)
        except AuthenticationError as exc:
            logger.info("Socket %s refused: %s", sid, exc.message)
            raise ConnectionRefusedError("Authentication failed")

        await self.server.save_session(sid, {"user_id": payload.user_id, "email": payload.email})
        await self.server.enter_room(sid, user_room(payload.user_id))
        logger.info("Socket %s connected as %s", sid, payload.user_id)

    async def on_disconnect(self, sid, reason=None):
        logger.info("Socket %s disconnected (%s)", sid, reason or "client")

    # Rooms

    @acknowledged("Failed to join conversation")
    async def on_join(self, sid, data):
        payload = JoinPayload.model_validate(data)
        if not payload.conv_id:
            raise BadRequestError("convId is required")

        user_id = await self.current_user_id(sid)
        with self.chat_service() as service:
            await service.get_thread_for_member(user_id, payload.conv_id)

        await self.server.enter_room(sid, thread_room(payload.conv_id))
        logger.debug("Socket %s joined %s", sid, thread_room(payload.conv_id))
        return {"ok": True}

    @acknowledged("Failed to leave conversation")
    async def on_leave(self, sid, data):
        payload = JoinPayload.model_validate(data)
        if not payload.conv_id:
            raise BadRequestError("convId is required")

        await self.server.leave_room(sid, thread_room(payload.conv_id))
        return {"ok": True}

    # Messages

    @acknowledged("Failed to send message")
    async def on_send_msg(self, sid, data):
        payload = SendMessagePayload.model_validate(data)
        media_urls = payload.resolved_media_urls()
        if not payload.conv_id:
            raise BadRequestError("convId is required")
        if not payload.text and not media_urls:
            raise BadRequestError("Message text or media is required")

        user_id = await self.current_user_id(sid)
        request = SendThreadMessage(
            thread_id=payload.conv_id,
            type=(MessageType.image if media_urls else MessageType.text).value,
            text=payload.text,
            image_url=media_urls[0] if media_urls else None,
        )
        with self.chat_service() as service:
            result = await service.send_message_to_thread(user_id, request)

        outgoing = OutgoingMessage.from_message(result.message, media_urls, payload.temp_id).to_wire()
        try:
            await self.broadcaster.to_thread(payload.conv_id, "new-msg", outgoing)
        except Exception:
            # The message is persisted; room members catch up from history
            logger.exception("Broadcast of message %s to %s failed", result.message.id, payload.conv_id)

        return {"ok": True, "message": outgoing}

    @acknowledged("Failed to react to message")
    async def on_react_msg(self, sid, data):
        payload = ReactMessagePayload.model_validate(data)
        if not payload.message_id:
            raise BadRequestError("messageId is required")

        user_id = await self.current_user_id(sid)
        with self.chat_service() as service:
            result = await service.react_to_message(user_id, payload.message_id, payload.emoji)

        broadcast = ReactionBroadcast(
            action=result.action,
            message_id=result.message.id,
            conv_id=result.message.thread_id,
            reactions=result.message.reactions,
        ).to_wire()
        try:
            await self.broadcaster.to_thread(broadcast["convId"], "msg-reacted", broadcast)
        except Exception:
            logger.exception("Broadcast of reaction on %s failed", result.message.id)

        return {"ok": True, "data": broadcast}

    async def on_ping(self, sid, data=None):
        await self.server.emit("pong", {"ok": True}, to=sid)
        return {"ok": True}
