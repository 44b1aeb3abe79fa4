from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, Integer, Index
from sqlalchemy.orm import relationship
from clubchat.db.session import Base
from clubchat.models.user import new_id
from datetime import datetime


class ThreadType:
    DIRECT = "direct"
    GROUP = "group"

    ALL = (DIRECT, GROUP)


class ChatThread(Base):
    __tablename__ = "chat_threads"

    id = Column(String(36), primary_key=True, default=new_id)
    type = Column(Enum(ThreadType.DIRECT, ThreadType.GROUP, name="chat_thread_type"), nullable=False, index=True)
    owner_user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String(100), nullable=True)
    avatar_url = Column(String, nullable=True)
    # Sorted member pair joined with "|"; unique so each pair has one direct thread
    direct_key = Column(String, nullable=True, unique=True)
    club_id = Column(String(36), ForeignKey("golf_clubs.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False, index=True)

    members = relationship(
        "ChatThreadMember",
        order_by="ChatThreadMember.position",
        cascade="all, delete-orphan",
        lazy="selectin",
        back_populates="thread",
    )

    @property
    def member_user_ids(self):
        return [m.user_id for m in self.members]

    def has_member(self, user_id: str) -> bool:
        return any(m.user_id == user_id for m in self.members)

    def peer_of(self, user_id: str):
        """Other participant of a direct thread, seen from ``user_id``."""
        ids = self.member_user_ids
        for member_id in ids:
            if member_id != user_id:
                return member_id
        return ids[0] if ids else None

    def __repr__(self):
        return f"<ChatThread id={self.id} type={self.type} members={len(self.members)}>"


class ChatThreadMember(Base):
    __tablename__ = "chat_thread_members"

    thread_id = Column(String(36), ForeignKey("chat_threads.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    thread = relationship("ChatThread", back_populates="members")

    __table_args__ = (
        Index("ix_chat_thread_members_user_id", "user_id"),
    )
