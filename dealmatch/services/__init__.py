from .swipe_service import SwipeService
from .compatibility_service import CompatibilityService
from .match_service import MatchService
from .match_notification_service import MatchNotificationService
from .chat_service import ChatService

__all__ = [
    "SwipeService",
    "CompatibilityService",
    "MatchService",
    "MatchNotificationService",
    "ChatService"
]
