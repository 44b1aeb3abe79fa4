from clubchat.services.profile import ProfileService
from clubchat.services.follow import FollowService
from clubchat.services.club import ClubMembershipService, ClubRoster
from clubchat.services.notification import NotificationService, NotificationEvent, NotificationType

__all__ = [
    "ProfileService",
    "FollowService",
    "ClubMembershipService",
    "ClubRoster",
    "NotificationService",
    "NotificationEvent",
    "NotificationType",
]
