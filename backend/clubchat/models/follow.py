from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from clubchat.db.session import Base
from clubchat.models.user import new_id
from datetime import datetime


class Follow(Base):
    __tablename__ = "follows"

    id = Column(String(36), primary_key=True, default=new_id)
    follower_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    following_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('follower_user_id', 'following_user_id', name='unique_follower_following'),
    )

    def __repr__(self):
        return f"<Follow follower={self.follower_user_id} following={self.following_user_id}>"
