from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from clubchat.db.session import Base
from clubchat.models.user import new_id
from datetime import datetime

class Notification(Base):
    __tablename__ = "notifications"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    from_user_id = Column(String(36), ForeignKey('users.id'), nullable=True)
    type = Column(String, nullable=False)  # chat_mention, chat_reaction, chat_group_added
    ref_id = Column(String, nullable=True) # e.g. message id, thread id
    message = Column(String, nullable=True)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    seen_at = Column(DateTime, nullable=True)
