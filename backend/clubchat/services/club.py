from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from clubchat.core.exceptions import NotFoundError
from clubchat.models.golf_club import ClubRoles, GolfClub, GolfClubRoleAssignment


@dataclass(frozen=True)
class ClubRoster:
    club_id: str
    club_user_id: str
    manager_owner: Optional[str] = None
    managers: List[str] = field(default_factory=list)
    members: List[str] = field(default_factory=list)

    def all_user_ids(self) -> List[str]:
        """Members, managers and the manager-owner, without duplicates."""
        ids = list(self.members) + list(self.managers)
        if self.manager_owner:
            ids.append(self.manager_owner)
        return list(dict.fromkeys(ids))

    def __contains__(self, user_id) -> bool:
        return user_id in self.all_user_ids()


class ClubMembershipService:
    def __init__(self, db: Session):
        self.db = db

    async def get_club(self, club_id: str) -> Optional[GolfClub]:
        if not club_id:
            return None
        return self.db.query(GolfClub).filter(GolfClub.id == club_id).first()

    async def get_club_owned_by(self, club_user_id: str) -> Optional[GolfClub]:
        return self.db.query(GolfClub).filter(GolfClub.club_user_id == club_user_id).first()

    async def get_club_roster(self, club_id: str) -> ClubRoster:
        club = await self.get_club(club_id)
        if not club:
            raise NotFoundError("Club not found.")

        managers: List[str] = []
        members: List[str] = []
        assignments = self.db.query(GolfClubRoleAssignment).filter(
            GolfClubRoleAssignment.club_id == club.id
        ).order_by(GolfClubRoleAssignment.created_at.asc()).all()
        for assignment in assignments:
            roles = assignment.roles or []
            if ClubRoles.CLUB_MANAGER in roles:
                managers.append(assignment.golfer_user_id)
            if ClubRoles.CLUB_MEMBER in roles:
                members.append(assignment.golfer_user_id)

        return ClubRoster(
            club_id=club.id,
            club_user_id=club.club_user_id,
            manager_owner=club.manager_user_id,
            managers=managers,
            members=members,
        )

    async def get_club_for_user(self, user_id: str) -> Optional[str]:
        """First club the user belongs to, as member, manager or manager-owner."""
        assignment = self.db.query(GolfClubRoleAssignment).filter(
            GolfClubRoleAssignment.golfer_user_id == user_id
        ).order_by(GolfClubRoleAssignment.created_at.asc()).first()
        if assignment:
            return assignment.club_id
        club = self.db.query(GolfClub).filter(
            or_(GolfClub.manager_user_id == user_id, GolfClub.club_user_id == user_id)
        ).first()
        return club.id if club else None
