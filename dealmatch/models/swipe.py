from datetime import datetime, timezone
import enum
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from dealmatch.core.database import Base


class SwipeDirection(str, enum.Enum):
    LEFT = "left"
    RIGHT = "right"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Swipe(Base):
    __tablename__ = "swipes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    deal_id = Column(UUID(as_uuid=True), ForeignKey("deals.id"), nullable=False, index=True)
    direction = Column(String(10), nullable=False)  # left or right

    # Microsecond precision so candidate order is stable for near-simultaneous swipes
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    # Relationships
    user = relationship("User")
    deal = relationship("Deal")

    __table_args__ = (
        # The first decision on a deal is authoritative
        UniqueConstraint("user_id", "deal_id", name="unique_user_deal_swipe"),
        # Candidate lookup: WHERE deal_id = X AND direction = 'right' ORDER BY created_at
        Index("idx_swipes_deal_direction_created", "deal_id", "direction", "created_at"),
    )

    def __repr__(self):
        return f"<Swipe(user_id={self.user_id}, deal_id={self.deal_id}, direction={self.direction})>"
