from sqlalchemy import Column, Date, DateTime, Float, Integer, String
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
import uuid
from dealmatch.core.database import Base


class User(Base):
    """Profile row owned by the identity/profile service; read-only here."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    display_name = Column(String(255))
    gender = Column(String(32))  # male, female, non_binary, prefer_not_to_say
    date_of_birth = Column(Date)

    # Last known location (decimal degrees)
    latitude = Column(Float)
    longitude = Column(Float)

    # Match settings
    preferred_gender = Column(String(32))  # None or "any" accepts everyone
    min_age = Column(Integer)
    max_age = Column(Integer)
    max_distance_km = Column(Float)
    # Bumped by the profile service on every match settings change
    preferences_version = Column(Integer, nullable=False, default=0, server_default="0")

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, display_name={self.display_name})>"
