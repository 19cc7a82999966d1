from datetime import datetime, timezone
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from dealmatch.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ordered_pair(user_a_id, user_b_id) -> tuple:
    """Return the two ids as (low, high); the storage form of an unordered pair."""
    return (user_a_id, user_b_id) if str(user_a_id) <= str(user_b_id) else (user_b_id, user_a_id)


class Match(Base):
    __tablename__ = "matches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    # user1 triggered the match with their swipe, user2 had swiped earlier
    user1_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    user2_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    # Sorted copy of the pair, used only for the symmetric unique constraint
    user_low_id = Column(UUID(as_uuid=True), nullable=False)
    user_high_id = Column(UUID(as_uuid=True), nullable=False)
    deal_id = Column(UUID(as_uuid=True), ForeignKey("deals.id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    # "New match" surfacing, flipped false -> true once per side
    notified_user1 = Column(Boolean, nullable=False, default=False, server_default="false")
    notified_user2 = Column(Boolean, nullable=False, default=False, server_default="false")

    # Relationships
    user1 = relationship("User", foreign_keys=[user1_id])
    user2 = relationship("User", foreign_keys=[user2_id])
    deal = relationship("Deal")

    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", "deal_id", name="unique_match_pair_deal"),
    )

    def is_participant(self, user_id) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_user_id(self, user_id):
        return self.user2_id if user_id == self.user1_id else self.user1_id

    def __repr__(self):
        return f"<Match(id={self.id}, users=({self.user1_id}, {self.user2_id}), deal_id={self.deal_id})>"
