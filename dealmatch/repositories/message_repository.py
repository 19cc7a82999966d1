"""
Message repository for the append-only chat transcript.
"""

from __future__ import annotations
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from dealmatch.models.message import Message
from .base import BaseRepository

logger = logging.getLogger(__name__)


class MessageRepository(BaseRepository[Message]):
    """Repository for Message model. Rows are inserted once and never updated."""

    def __init__(self):
        """Initialize with Message model."""
        super().__init__(Message)

    async def get_history(
        self,
        db: AsyncSession,
        match_id: UUID
    ) -> list[Message]:
        """
        Get all messages of a match in chronological order.

        Ties on created_at are broken by id so the order is total and stable
        across repeated calls.

        Args:
            db: Active database session
            match_id: UUID of the match

        Returns:
            List of messages, oldest first
        """
        try:
            stmt = (
                select(Message)
                .where(Message.match_id == match_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching message history for match {match_id}: {e}")
            raise
