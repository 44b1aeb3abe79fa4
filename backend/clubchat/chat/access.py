"""Who may talk to whom: DM eligibility, thread membership, group admissibility."""
from dataclasses import dataclass
from typing import List, Optional, Union

from clubchat.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from clubchat.models.thread import ChatThread
from clubchat.models.user import Roles
from clubchat.services.club import ClubMembershipService, ClubRoster
from clubchat.services.follow import FollowService
from clubchat.services.profile import ProfileService


@dataclass(frozen=True)
class ClubOwnerCreator:
    user_id: str
    roster: ClubRoster


@dataclass(frozen=True)
class GolferCreator:
    user_id: str
    roster: ClubRoster


GroupCreator = Union[ClubOwnerCreator, GolferCreator]


@dataclass(frozen=True)
class ClubStaffViewer:
    user_id: str
    roster: ClubRoster


@dataclass(frozen=True)
class ClubGolferViewer:
    user_id: str
    roster: ClubRoster


ClubViewer = Union[ClubStaffViewer, ClubGolferViewer]


@dataclass(frozen=True)
class GroupDraft:
    name: str
    member_user_ids: List[str]
    club_id: Optional[str] = None
    avatar_url: Optional[str] = None


class AccessControl:
    def __init__(self, profiles: ProfileService, follows: FollowService, clubs: ClubMembershipService):
        self.profiles = profiles
        self.follows = follows
        self.clubs = clubs

    async def can_direct_message(self, user_a: str, user_b: str) -> bool:
        """Either direction of the follow graph is enough."""
        if await self.follows.is_following(user_a, user_b):
            return True
        return await self.follows.is_following(user_b, user_a)

    async def assert_can_direct_message(self, user_a: str, user_b: str) -> None:
        if not await self.can_direct_message(user_a, user_b):
            raise ForbiddenError("Chat allowed only when at least one golfer follows the other.")

    @staticmethod
    def assert_thread_member(thread: ChatThread, user_id: str) -> None:
        if not thread.has_member(user_id):
            raise ForbiddenError("You are not a member of this thread.")

    async def resolve_group_creator(self, user_id: str, club_id: Optional[str] = None) -> GroupCreator:
        role = await self.profiles.get_role(user_id)

        if role == Roles.GOLF_CLUB:
            club = await self.clubs.get_club_owned_by(user_id)
            if club is None:
                raise NotFoundError("Club not found for this account.")
            if club_id and club_id != club.id:
                raise ForbiddenError("You can only create groups for your own club.")
            return ClubOwnerCreator(user_id=user_id, roster=await self.clubs.get_club_roster(club.id))

        club_id = club_id or await self.clubs.get_club_for_user(user_id)
        if not club_id:
            raise BadRequestError("A club is required to create a group.")
        try:
            roster = await self.clubs.get_club_roster(club_id)
        except NotFoundError:
            raise BadRequestError("Club not found.")
        if user_id not in roster:
            raise BadRequestError("You are not a member of this club.")
        return GolferCreator(user_id=user_id, roster=roster)

    async def build_group_draft(
        self,
        creator: GroupCreator,
        name: str,
        requested_user_ids: Optional[List[str]] = None,
        avatar_url: Optional[str] = None,
    ) -> GroupDraft:
        requested = [uid for uid in dict.fromkeys(requested_user_ids or []) if uid != creator.user_id]
        roster_ids = creator.roster.all_user_ids()

        if isinstance(creator, ClubOwnerCreator):
            selected = [uid for uid in requested if uid in roster_ids]
            if not selected:
                # Club groups default to everyone on the roster
                selected = roster_ids
        else:
            await self._assert_golfer_may_add(creator, requested)
            selected = requested

        members = list(dict.fromkeys([creator.user_id] + selected))
        if len(members) < 2:
            raise BadRequestError("Add at least one other golfer to create a group.")

        return GroupDraft(
            name=name,
            member_user_ids=members,
            club_id=creator.roster.club_id,
            avatar_url=avatar_url,
        )

    async def assert_may_add_members(self, owner_user_id: str, club_id: Optional[str], user_ids: List[str]) -> None:
        """Apply the group creation rules of the owner's creator kind to later additions."""
        creator = await self.resolve_group_creator(owner_user_id, club_id)
        if isinstance(creator, ClubOwnerCreator):
            roster_ids = creator.roster.all_user_ids()
            if any(uid not in roster_ids for uid in user_ids):
                raise ForbiddenError("Group members must belong to the club.")
        else:
            await self._assert_golfer_may_add(creator, user_ids)

    async def _assert_golfer_may_add(self, creator: GolferCreator, user_ids: List[str]) -> None:
        roster_ids = creator.roster.all_user_ids()
        if any(uid not in roster_ids for uid in user_ids):
            raise ForbiddenError("Group members must belong to the club.")
        following = set(await self.follows.list_following_ids(creator.user_id))
        if any(uid not in following for uid in user_ids):
            raise ForbiddenError("You can only add golfers you follow to a group.")

    async def resolve_club_viewer(self, viewer_user_id: str, club_id: str) -> ClubViewer:
        roster = await self.clubs.get_club_roster(club_id)
        role = await self.profiles.get_role(viewer_user_id)

        if role == Roles.GOLF_CLUB:
            if roster.club_user_id != viewer_user_id:
                raise ForbiddenError("You can only view your own club's groups.")
            return ClubStaffViewer(user_id=viewer_user_id, roster=roster)

        if viewer_user_id not in roster:
            raise ForbiddenError("You are not a member of this club.")
        return ClubGolferViewer(user_id=viewer_user_id, roster=roster)
