from typing import Any, Dict

import socketio

from clubchat.core.config import settings
from clubchat.utils.logger import get_logger

logger = get_logger("core.realtime")


def thread_room(thread_id: str) -> str:
    return f"conv:{thread_id}"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def create_socket_server() -> socketio.AsyncServer:
    """Socket.IO server whose rooms live in memory, or in Redis when configured.

    With ``SOCKETIO_REDIS_URL`` set, every process publishes emits to Redis and
    forwards them to its own sockets, so a room may span several workers.
    """
    client_manager = None
    if settings.SOCKETIO_REDIS_URL:
        client_manager = socketio.AsyncRedisManager(settings.SOCKETIO_REDIS_URL)
        logger.info("Socket.IO fan-out through Redis")

    return socketio.AsyncServer(
        async_mode="asgi",
        client_manager=client_manager,
        cors_allowed_origins=settings.CORS_ORIGINS,
        ping_timeout=60,
        ping_interval=25,
        logger=False,
        engineio_logger=False,
    )


class RoomBroadcaster:
    """Emits to logical rooms; which sockets are in a room is the server's concern."""

    def __init__(self, server: socketio.AsyncServer):
        self.server = server

    async def to_thread(self, thread_id: str, event: str, data: Dict[str, Any]) -> None:
        await self.server.emit(event, data, room=thread_room(thread_id))

    async def to_user(self, user_id: str, event: str, data: Dict[str, Any]) -> None:
        await self.server.emit(event, data, room=user_room(user_id))


# Global server and broadcaster instances
sio = create_socket_server()
broadcaster = RoomBroadcaster(sio)
