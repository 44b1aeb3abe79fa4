"""Persistence for chat threads, memberships, messages and reactions."""
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubchat.models.message import ChatMessage, ChatMessageReaction, MessageType
from clubchat.models.thread import ChatThread, ChatThreadMember, ThreadType
from clubchat.models.user import new_id
from clubchat.utils.logger import get_logger

logger = get_logger("repositories.chat")


def dialect_insert(db: Session, table):
    """INSERT construct supporting ON CONFLICT for the bound dialect."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"ON CONFLICT inserts are not supported on {dialect}")
    return insert(table)


class ChatThreadRepository:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def build_direct_key(user_a: str, user_b: str) -> str:
        return "|".join(sorted([str(user_a), str(user_b)]))

    def find_by_id(self, thread_id: str) -> Optional[ChatThread]:
        if not thread_id:
            return None
        return self.db.query(ChatThread).filter(ChatThread.id == thread_id).first()

    def find_direct_between(self, user_a: str, user_b: str) -> Optional[ChatThread]:
        direct_key = self.build_direct_key(user_a, user_b)
        return self.db.query(ChatThread).filter(
            ChatThread.type == ThreadType.DIRECT,
            ChatThread.direct_key == direct_key,
        ).first()

    def create_direct(self, user_a: str, user_b: str) -> ChatThread:
        """Create the direct thread for a pair, or return the one a concurrent call created."""
        thread = ChatThread(
            id=new_id(),
            type=ThreadType.DIRECT,
            owner_user_id=None,
            direct_key=self.build_direct_key(user_a, user_b),
        )
        thread.members = self._member_rows([user_a, user_b])
        self.db.add(thread)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.find_direct_between(user_a, user_b)
            if existing is None:
                raise
            logger.info("Direct thread for %s already created concurrently", existing.direct_key)
            return existing
        self.db.refresh(thread)
        return thread

    def create_group(
        self,
        owner_user_id: str,
        name: str,
        member_user_ids: List[str],
        avatar_url: Optional[str] = None,
        club_id: Optional[str] = None,
    ) -> ChatThread:
        thread = ChatThread(
            id=new_id(),
            type=ThreadType.GROUP,
            owner_user_id=owner_user_id,
            name=name,
            avatar_url=avatar_url,
            club_id=club_id,
        )
        thread.members = self._member_rows(member_user_ids)
        self.db.add(thread)
        self.db.commit()
        self.db.refresh(thread)
        return thread

    def find_threads_for_user(self, user_id: str, thread_type: Optional[str] = None) -> List[ChatThread]:
        query = self.db.query(ChatThread).join(
            ChatThreadMember, ChatThreadMember.thread_id == ChatThread.id
        ).filter(ChatThreadMember.user_id == user_id)
        if thread_type:
            query = query.filter(ChatThread.type == thread_type)
        return query.order_by(ChatThread.updated_at.desc()).all()

    def find_club_groups(self, club_id: str, member_user_id: Optional[str] = None) -> List[ChatThread]:
        query = self.db.query(ChatThread).filter(
            ChatThread.type == ThreadType.GROUP,
            ChatThread.club_id == club_id,
        )
        if member_user_id:
            query = query.join(
                ChatThreadMember, ChatThreadMember.thread_id == ChatThread.id
            ).filter(ChatThreadMember.user_id == member_user_id)
        return query.order_by(ChatThread.updated_at.desc()).all()

    def add_members(self, thread_id: str, member_user_ids: Iterable[str]) -> Optional[ChatThread]:
        ids = list(dict.fromkeys(member_user_ids))
        if ids:
            start = self.db.query(func.coalesce(func.max(ChatThreadMember.position), -1)).filter(
                ChatThreadMember.thread_id == thread_id
            ).scalar() + 1
            now = datetime.utcnow()
            stmt = dialect_insert(self.db, ChatThreadMember.__table__).values([
                {"thread_id": thread_id, "user_id": uid, "position": start + i, "joined_at": now}
                for i, uid in enumerate(ids)
            ]).on_conflict_do_nothing(index_elements=["thread_id", "user_id"])
            self.db.execute(stmt)
            self.db.commit()
        return self.find_by_id(thread_id)

    def remove_member(self, thread_id: str, user_id: str) -> Optional[ChatThread]:
        self.db.query(ChatThreadMember).filter(
            ChatThreadMember.thread_id == thread_id,
            ChatThreadMember.user_id == user_id,
        ).delete(synchronize_session=False)
        self.db.commit()
        return self.find_by_id(thread_id)

    def touch(self, thread_id: str) -> None:
        self.db.query(ChatThread).filter(ChatThread.id == thread_id).update(
            {ChatThread.updated_at: datetime.utcnow()}, synchronize_session=False
        )
        self.db.commit()

    @staticmethod
    def _member_rows(member_user_ids: Iterable[str]) -> List[ChatThreadMember]:
        now = datetime.utcnow()
        return [
            ChatThreadMember(user_id=uid, position=i, joined_at=now)
            for i, uid in enumerate(dict.fromkeys(member_user_ids))
        ]


class ChatMessageRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        thread_id: str,
        sender_user_id: str,
        message_type: MessageType,
        text: Optional[str] = None,
        image_url: Optional[str] = None,
        mentioned_user_ids: Optional[List[str]] = None,
    ) -> ChatMessage:
        message = ChatMessage(
            id=new_id(),
            thread_id=thread_id,
            sender_user_id=sender_user_id,
            type=message_type,
            text=text,
            image_url=image_url,
            mentioned_user_ids=list(mentioned_user_ids or []),
        )
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def find_by_id(self, message_id: str) -> Optional[ChatMessage]:
        if not message_id:
            return None
        return self.db.query(ChatMessage).filter(ChatMessage.id == message_id).first()

    def find_by_thread(self, thread_id: str) -> List[ChatMessage]:
        return self.db.query(ChatMessage).filter(
            ChatMessage.thread_id == thread_id
        ).order_by(ChatMessage.created_at.asc()).all()

    def find_last_by_thread(self, thread_id: str) -> Optional[ChatMessage]:
        return self.db.query(ChatMessage).filter(
            ChatMessage.thread_id == thread_id
        ).order_by(ChatMessage.created_at.desc()).first()

    def toggle_reaction(self, message_id: str, user_id: str, emoji: str) -> str:
        """Remove the user's reaction if it is ``emoji``, else set it. Returns the action taken.

        Both branches are single statements so two rapid toggles by the same
        user cannot lose an update.
        """
        removed = self.db.query(ChatMessageReaction).filter(
            ChatMessageReaction.message_id == message_id,
            ChatMessageReaction.user_id == user_id,
            ChatMessageReaction.emoji == emoji,
        ).delete(synchronize_session=False)

        now = datetime.utcnow()
        if removed:
            action = "removed"
        else:
            stmt = dialect_insert(self.db, ChatMessageReaction.__table__).values(
                id=new_id(),
                message_id=message_id,
                user_id=user_id,
                emoji=emoji,
                reacted_at=now,
            ).on_conflict_do_update(
                index_elements=["message_id", "user_id"],
                set_={"emoji": emoji, "reacted_at": now},
            )
            self.db.execute(stmt)
            action = "set"

        self.db.query(ChatMessage).filter(ChatMessage.id == message_id).update(
            {ChatMessage.updated_at: now}, synchronize_session=False
        )
        self.db.commit()
        return action
