from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubchat.core.exceptions import BadRequestError
from clubchat.models.follow import Follow


class FollowService:
    def __init__(self, db: Session):
        self.db = db

    async def is_following(self, follower_user_id: str, following_user_id: str) -> bool:
        return self.db.query(Follow.id).filter(
            Follow.follower_user_id == follower_user_id,
            Follow.following_user_id == following_user_id,
        ).first() is not None

    async def list_following_ids(self, follower_user_id: str) -> List[str]:
        rows = self.db.query(Follow.following_user_id).filter(
            Follow.follower_user_id == follower_user_id
        ).all()
        return [row[0] for row in rows]

    async def follow(self, follower_user_id: str, following_user_id: str) -> Follow:
        if follower_user_id == following_user_id:
            raise BadRequestError("You cannot follow yourself.")
        existing = self.db.query(Follow).filter(
            Follow.follower_user_id == follower_user_id,
            Follow.following_user_id == following_user_id,
        ).first()
        if existing:
            return existing
        follow = Follow(follower_user_id=follower_user_id, following_user_id=following_user_id)
        self.db.add(follow)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self.db.query(Follow).filter(
                Follow.follower_user_id == follower_user_id,
                Follow.following_user_id == following_user_id,
            ).one()
        self.db.refresh(follow)
        return follow
