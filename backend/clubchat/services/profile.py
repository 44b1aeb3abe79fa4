from typing import Dict, Iterable

from sqlalchemy.orm import Session

from clubchat.core.exceptions import NotFoundError
from clubchat.models.user import User
from clubchat.schemas.user import UserProfile


class ProfileService:
    """Resolves user ids and @handles to display profiles."""

    def __init__(self, db: Session):
        self.db = db

    def _get_user(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first() if user_id else None
        if not user:
            raise NotFoundError("User not found.")
        return user

    async def get_profile(self, user_id: str) -> UserProfile:
        return UserProfile.model_validate(self._get_user(user_id))

    async def get_role(self, user_id: str) -> str:
        return self._get_user(user_id).role

    async def exists(self, user_id: str) -> bool:
        if not user_id:
            return False
        return self.db.query(User.id).filter(User.id == user_id).first() is not None

    async def resolve_handles(self, handles: Iterable[str]) -> Dict[str, str]:
        """Batched ``{username: user_id}`` lookup; unknown handles are absent."""
        handles = list(handles)
        if not handles:
            return {}
        rows = self.db.query(User.username, User.id).filter(User.username.in_(handles)).all()
        return {username: user_id for username, user_id in rows}
