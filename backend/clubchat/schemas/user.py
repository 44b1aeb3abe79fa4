from typing import Optional

from clubchat.schemas.base import CamelModel


class UserProfile(CamelModel):
    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Optional[str] = None
