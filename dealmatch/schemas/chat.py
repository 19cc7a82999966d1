from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
import uuid


class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1)
    # Client-generated id; resending with the same id never duplicates the message
    client_id: Optional[uuid.UUID] = None

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message text must not be blank")
        return v


class MessageEvent(BaseModel):
    """A persisted chat message; also the realtime channel payload"""
    id: uuid.UUID
    match_id: uuid.UUID
    sender_id: uuid.UUID
    text: str
    created_at: datetime

    class Config:
        from_attributes = True


class MessageHistoryResponse(BaseModel):
    items: List[MessageEvent]
    total: int
