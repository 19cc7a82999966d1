"""
Swipe repository for recording decisions and finding match candidates.

This module provides the swipe-specific queries: a user's decision on a
deal, the right swipes other users made on the same deal (the candidate set
for matching) and the set of deals a user has already decided on.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from dealmatch.models.deal import Deal
from dealmatch.models.swipe import Swipe, SwipeDirection
from .base import BaseRepository

logger = logging.getLogger(__name__)


class SwipeRepository(BaseRepository[Swipe]):
    """
    Repository for Swipe model.

    Provides methods for:
    - Looking up a user's decision on a deal
    - Listing right swipes on a deal from other users, earliest first
    - Listing deals a user has not swiped yet
    """

    def __init__(self):
        """Initialize with Swipe model."""
        super().__init__(Swipe)

    async def get_user_swipe_on_deal(
        self,
        db: AsyncSession,
        user_id: UUID,
        deal_id: UUID
    ) -> Optional[Swipe]:
        """
        Get the user's recorded decision on a deal.

        Args:
            db: Active database session
            user_id: UUID of the user
            deal_id: UUID of the deal

        Returns:
            The swipe if one exists, None otherwise
        """
        try:
            stmt = select(Swipe).where(
                and_(
                    Swipe.user_id == user_id,
                    Swipe.deal_id == deal_id
                )
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error fetching swipe for user {user_id} on deal {deal_id}: {e}")
            raise

    async def get_right_swipes_on_deal(
        self,
        db: AsyncSession,
        deal_id: UUID,
        exclude_user_id: UUID
    ) -> list[Swipe]:
        """
        Get right swipes on a deal by everyone except one user.

        Ordered by creation time (ties broken by id) so the user who
        expressed interest first is considered first.

        Args:
            db: Active database session
            deal_id: UUID of the deal
            exclude_user_id: UUID of the swiping user

        Returns:
            List of swipes, earliest first

        Example:
            candidates = await repo.get_right_swipes_on_deal(db, deal_id, user_id)
            for swipe in candidates:
                print(swipe.user_id)
        """
        try:
            stmt = (
                select(Swipe)
                .where(
                    and_(
                        Swipe.deal_id == deal_id,
                        Swipe.direction == SwipeDirection.RIGHT.value,
                        Swipe.user_id != exclude_user_id
                    )
                )
                .order_by(Swipe.created_at.asc(), Swipe.id.asc())
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching right swipes on deal {deal_id}: {e}")
            raise

    async def get_swiped_deal_ids(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> set[UUID]:
        """Return ids of every deal the user has swiped on, either direction."""
        try:
            result = await db.execute(select(Swipe.deal_id).where(Swipe.user_id == user_id))
            return set(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching swiped deals for user {user_id}: {e}")
            raise

    async def get_unswiped_active_deals(
        self,
        db: AsyncSession,
        user_id: UUID,
        limit: int = 50
    ) -> list[Deal]:
        """
        Get active deals the user has not decided on yet, newest first.

        Args:
            db: Active database session
            user_id: UUID of the user
            limit: Maximum number of deals to return

        Returns:
            List of Deal instances
        """
        try:
            swiped = select(Swipe.deal_id).where(Swipe.user_id == user_id)
            stmt = (
                select(Deal)
                .where(
                    and_(
                        Deal.is_active.is_(True),
                        Deal.id.not_in(swiped)
                    )
                )
                .order_by(Deal.created_at.desc(), Deal.id)
                .limit(limit)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching deal feed for user {user_id}: {e}")
            raise
