from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, JSON
from sqlalchemy.orm import relationship
from clubchat.db.session import Base
from clubchat.models.user import new_id
from datetime import datetime


class ClubRoles:
    CLUB_MEMBER = "club_member"
    CLUB_MANAGER = "club_manager"


class GolfClub(Base):
    __tablename__ = "golf_clubs"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    # Login account of the club itself (role golf_club)
    club_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True)
    manager_user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    role_assignments = relationship("GolfClubRoleAssignment", back_populates="club", cascade="all, delete-orphan")


class GolfClubRoleAssignment(Base):
    __tablename__ = "golf_club_role_assignments"

    id = Column(String(36), primary_key=True, default=new_id)
    club_id = Column(String(36), ForeignKey("golf_clubs.id"), nullable=False, index=True)
    golfer_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    roles = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)

    club = relationship("GolfClub", back_populates="role_assignments")

    __table_args__ = (
        UniqueConstraint('club_id', 'golfer_user_id', name='unique_club_golfer'),
    )
