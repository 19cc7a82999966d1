from pydantic import BaseModel
from typing import Optional
from datetime import datetime
import uuid
from dealmatch.schemas.match import Match as MatchSchema


class SwipeCreate(BaseModel):
    deal_id: uuid.UUID
    direction: str  # left or right (case-insensitive)


class Swipe(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    deal_id: uuid.UUID
    direction: str
    created_at: datetime

    class Config:
        from_attributes = True


class SwipeResult(BaseModel):
    """Recorded swipe plus the match it produced, if any"""
    swipe: Swipe
    match: Optional[MatchSchema] = None


class DealFeedItem(BaseModel):
    id: uuid.UUID
    merchant_name: str
    deal_nature: Optional[str] = None
    terms_conditions: Optional[str] = None
    time_period_start: Optional[datetime] = None
    time_period_end: Optional[datetime] = None

    class Config:
        from_attributes = True
