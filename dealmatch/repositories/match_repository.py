"""
Match repository for symmetric match lookup and notification claims.

A match is keyed by the unordered user pair plus the deal. Lookups always go
through the sorted (user_low_id, user_high_id) columns so (A, B) and (B, A)
resolve to the same row.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy import select, func, and_, or_, update as sql_update, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import SQLAlchemyError
import logging

from dealmatch.models.match import Match, ordered_pair
from .base import BaseRepository

logger = logging.getLogger(__name__)


class MatchRepository(BaseRepository[Match]):
    """
    Repository for Match model.

    Provides methods for:
    - Symmetric lookup of a pair's match on a deal
    - Listing a user's matches with users and deal loaded
    - Atomically claiming unnotified matches for one side
    """

    def __init__(self):
        """Initialize with Match model."""
        super().__init__(Match)

    async def get_for_pair(
        self,
        db: AsyncSession,
        user_a_id: UUID,
        user_b_id: UUID,
        deal_id: UUID
    ) -> Optional[Match]:
        """
        Get the match between two users on a deal, in either order.

        Args:
            db: Active database session
            user_a_id: UUID of one user
            user_b_id: UUID of the other user
            deal_id: UUID of the deal

        Returns:
            Match if one exists, None otherwise

        Example:
            match = await repo.get_for_pair(db, bob_id, alice_id, deal_id)
            # same row as get_for_pair(db, alice_id, bob_id, deal_id)
        """
        low, high = ordered_pair(user_a_id, user_b_id)
        try:
            stmt = select(Match).where(
                and_(
                    Match.user_low_id == low,
                    Match.user_high_id == high,
                    Match.deal_id == deal_id
                )
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error(f"Error fetching match for pair ({user_a_id}, {user_b_id}) on deal {deal_id}: {e}")
            raise

    async def create_for_pair(
        self,
        db: AsyncSession,
        initiator_id: UUID,
        counterpart_id: UUID,
        deal_id: UUID
    ) -> Match:
        """
        Insert a match with both notified flags false.

        Raises:
            IntegrityError: If the pair already has a match on this deal
        """
        low, high = ordered_pair(initiator_id, counterpart_id)
        return await self.create(db, {
            "user1_id": initiator_id,
            "user2_id": counterpart_id,
            "user_low_id": low,
            "user_high_id": high,
            "deal_id": deal_id,
            "notified_user1": False,
            "notified_user2": False,
        })

    async def get_user_matches(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> list[Match]:
        """
        Get every match the user is part of, newest first.

        Both users and the deal are eagerly loaded for list enrichment.
        """
        try:
            stmt = (
                select(Match)
                .where(or_(Match.user1_id == user_id, Match.user2_id == user_id))
                .options(
                    selectinload(Match.user1),
                    selectinload(Match.user2),
                    selectinload(Match.deal)
                )
                .order_by(desc(Match.created_at), Match.id)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching matches for user {user_id}: {e}")
            raise

    async def claim_unnotified(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> list[UUID]:
        """
        Flip the user's notified flag on every match where it is still false.

        Each side is claimed with one conditional UPDATE ... RETURNING, so
        concurrent callers get disjoint id sets: a row only comes back to the
        caller whose statement actually changed it.

        Args:
            db: Active database session
            user_id: UUID of the user being notified

        Returns:
            Ids of the matches claimed by this call
        """
        try:
            claimed: list[UUID] = []
            for user_column, flag_column, flag_name in (
                (Match.user1_id, Match.notified_user1, "notified_user1"),
                (Match.user2_id, Match.notified_user2, "notified_user2"),
            ):
                stmt = (
                    sql_update(Match)
                    .where(
                        and_(
                            user_column == user_id,
                            flag_column.is_(False)
                        )
                    )
                    .values({flag_name: True})
                    .returning(Match.id)
                    .execution_options(synchronize_session=False)
                )
                result = await db.execute(stmt)
                claimed.extend(result.scalars().all())

            await db.flush()
            return claimed

        except SQLAlchemyError as e:
            logger.error(f"Error claiming match notifications for user {user_id}: {e}")
            raise

    async def get_many(
        self,
        db: AsyncSession,
        match_ids: list[UUID]
    ) -> list[Match]:
        """Get matches by id, oldest first. Returns fresh column values."""
        if not match_ids:
            return []
        try:
            stmt = (
                select(Match)
                .where(Match.id.in_(match_ids))
                .order_by(Match.created_at, Match.id)
                .execution_options(populate_existing=True)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error fetching matches {match_ids}: {e}")
            raise

    async def count_unnotified(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> int:
        """Count matches the user has not been told about yet."""
        try:
            stmt = select(func.count(Match.id)).where(
                or_(
                    and_(Match.user1_id == user_id, Match.notified_user1.is_(False)),
                    and_(Match.user2_id == user_id, Match.notified_user2.is_(False))
                )
            )
            result = await db.execute(stmt)
            return result.scalar() or 0

        except SQLAlchemyError as e:
            logger.error(f"Error counting unnotified matches for user {user_id}: {e}")
            raise
