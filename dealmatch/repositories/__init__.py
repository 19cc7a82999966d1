# Repositories package
from .base import BaseRepository
from .swipe_repository import SwipeRepository
from .match_repository import MatchRepository
from .message_repository import MessageRepository

__all__ = [
    "BaseRepository",
    "SwipeRepository",
    "MatchRepository",
    "MessageRepository",
]
