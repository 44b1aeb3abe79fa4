from clubchat.models.user import User, Roles
from clubchat.models.follow import Follow
from clubchat.models.golf_club import GolfClub, GolfClubRoleAssignment, ClubRoles
from clubchat.models.thread import ChatThread, ChatThreadMember, ThreadType
from clubchat.models.message import ChatMessage, ChatMessageReaction, MessageType
from clubchat.models.notification import Notification

__all__ = [
    "User",
    "Roles",
    "Follow",
    "GolfClub",
    "GolfClubRoleAssignment",
    "ClubRoles",
    "ChatThread",
    "ChatThreadMember",
    "ThreadType",
    "ChatMessage",
    "ChatMessageReaction",
    "MessageType",
    "Notification"
]
