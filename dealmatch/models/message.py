from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from dealmatch.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(Base):
    __tablename__ = "messages"

    # May be supplied by the client as an idempotency key
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    match_id = Column(UUID(as_uuid=True), ForeignKey("matches.id"), nullable=False)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    text = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    match = relationship("Match")

    __table_args__ = (
        # History: WHERE match_id = X ORDER BY created_at, id
        Index("idx_messages_match_created", "match_id", "created_at", "id"),
    )

    def __repr__(self):
        return f"<Message(id={self.id}, match_id={self.match_id}, sender_id={self.sender_id})>"
