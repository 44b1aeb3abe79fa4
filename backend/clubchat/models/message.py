from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint, JSON, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from clubchat.db.session import Base
from clubchat.models.user import new_id
from datetime import datetime
from enum import Enum


class MessageType(str, Enum):
    text = 'text'
    image = 'image'


MAX_EMOJI_LENGTH = 16


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=new_id)
    thread_id = Column(String(36), ForeignKey('chat_threads.id'), nullable=False)
    sender_user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    # Map Python attribute 'type' to DB enum column 'message_type'
    type = Column('message_type', SAEnum(MessageType, name='chat_message_type', native_enum=True), nullable=False)
    text = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    mentioned_user_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reactions = relationship(
        "ChatMessageReaction",
        order_by="ChatMessageReaction.reacted_at",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_chat_messages_thread_created", "thread_id", "created_at"),
    )


class ChatMessageReaction(Base):
    __tablename__ = "chat_message_reactions"

    id = Column(String(36), primary_key=True, default=new_id)
    message_id = Column(String(36), ForeignKey('chat_messages.id', ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    emoji = Column(String(MAX_EMOJI_LENGTH), nullable=False)
    reacted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('message_id', 'user_id', name='unique_reaction_per_user'),
    )
