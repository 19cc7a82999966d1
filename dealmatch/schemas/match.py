from pydantic import BaseModel
from typing import List
from datetime import datetime
import uuid


class Match(BaseModel):
    id: uuid.UUID
    user1_id: uuid.UUID
    user2_id: uuid.UUID
    deal_id: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True


class MatchSummary(BaseModel):
    """Match as shown in the user's match list"""
    id: uuid.UUID
    deal_id: uuid.UUID
    deal_name: str
    matched_user_id: uuid.UUID
    matched_user_name: str
    created_at: datetime


class MatchListResponse(BaseModel):
    items: List[MatchSummary]
    total: int


class ConsumedMatchesResponse(BaseModel):
    """Matches newly surfaced to the user by this call"""
    items: List[Match]
    count: int


class PendingMatchesResponse(BaseModel):
    count: int
