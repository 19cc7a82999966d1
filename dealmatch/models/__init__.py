from .user import User
from .deal import Deal
from .swipe import Swipe, SwipeDirection
from .match import Match
from .message import Message

__all__ = ["User", "Deal", "Swipe", "SwipeDirection", "Match", "Message"]
