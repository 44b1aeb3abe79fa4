from sqlalchemy import Column, String, DateTime, Enum
from datetime import datetime
import uuid
from clubchat.db.session import Base


class Roles:
    GOLFER = "golfer"
    GOLF_CLUB = "golf_club"
    ADMIN = "admin"


def new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, unique=True, nullable=True)
    # The @handle used by chat mentions
    username = Column(String(50), unique=True, nullable=True, index=True)
    display_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    role = Column(Enum(Roles.GOLFER, Roles.GOLF_CLUB, Roles.ADMIN, name="user_role"), nullable=False, default=Roles.GOLFER)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<User id={self.id} username={self.username} role={self.role}>"
