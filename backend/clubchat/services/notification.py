from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from clubchat.models.notification import Notification
from clubchat.utils.logger import get_logger

logger = get_logger("services.notification")

# async (user_id, event_name, data) -> None
UserPublisher = Callable[[str, str, Dict[str, Any]], Awaitable[None]]


class NotificationType:
    CHAT_MENTION = "chat_mention"
    CHAT_REACTION = "chat_reaction"
    CHAT_GROUP_ADDED = "chat_group_added"


@dataclass
class NotificationEvent:
    recipient_user_id: str
    type: str
    message: str
    actor_user_id: Optional[str] = None
    ref_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)


class NotificationService:
    """Fire-and-forget sink: a failing notification never fails the chat call."""

    def __init__(self, db: Session, publisher: Optional[UserPublisher] = None):
        self.db = db
        self.publisher = publisher

    async def notify(self, event: NotificationEvent) -> None:
        try:
            notification = Notification(
                user_id=event.recipient_user_id,
                from_user_id=event.actor_user_id,
                type=event.type,
                ref_id=event.ref_id,
                message=event.message,
                payload=event.payload or None,
            )
            self.db.add(notification)
            self.db.commit()

            if self.publisher is not None:
                await self.publisher(event.recipient_user_id, "notification", {
                    "id": notification.id,
                    "type": event.type,
                    "message": event.message,
                    "actorUserId": event.actor_user_id,
                    "refId": event.ref_id,
                    "payload": event.payload,
                })
        except Exception:
            self.db.rollback()
            logger.exception("Failed to deliver %s notification to %s", event.type, event.recipient_user_id)

    async def notify_many(self, events: Iterable[NotificationEvent]) -> None:
        for event in events:
            await self.notify(event)
