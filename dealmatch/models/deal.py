from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
import uuid
from dealmatch.core.database import Base


class Deal(Base):
    """Merchant deal owned by the catalog service; read-only here."""

    __tablename__ = "deals"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    merchant_name = Column(String(255), nullable=False)
    deal_nature = Column(String(255))
    terms_conditions = Column(Text)
    time_period_start = Column(DateTime(timezone=True))
    time_period_end = Column(DateTime(timezone=True))
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Deal(id={self.id}, merchant_name={self.merchant_name})>"
