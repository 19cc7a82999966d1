from .chat import MessageCreate, MessageEvent, MessageHistoryResponse
from .match import Match, MatchSummary, MatchListResponse, ConsumedMatchesResponse, PendingMatchesResponse
from .swipe import SwipeCreate, Swipe, SwipeResult, DealFeedItem

__all__ = [
    "MessageCreate", "MessageEvent", "MessageHistoryResponse",
    "Match", "MatchSummary", "MatchListResponse", "ConsumedMatchesResponse", "PendingMatchesResponse",
    "SwipeCreate", "Swipe", "SwipeResult", "DealFeedItem",
]
