"""
Swipe service: the ledger of left/right decisions on deals.

Recording a decision is deliberately separate from matching. The API layer
calls MatchService.try_match after a successful right swipe, so a failure
while matching never loses the recorded decision.
"""

from __future__ import annotations
from typing import Optional, Union
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from dealmatch.core.database import bounded
from dealmatch.core.exceptions import DealNotFoundError, DuplicateSwipeError, InvalidSwipeError
from dealmatch.models.deal import Deal
from dealmatch.models.swipe import Swipe, SwipeDirection
from dealmatch.repositories.swipe_repository import SwipeRepository

logger = logging.getLogger(__name__)


class SwipeService:
    """
    Service for recording swipes.

    At most one swipe exists per (user, deal). The first decision is
    authoritative: a repeated swipe is rejected with DuplicateSwipeError and
    the stored row is never overwritten. The unique constraint on the swipes
    table is what enforces this; there is no check-then-insert.
    """

    FEED_PAGE_SIZE = 50

    def __init__(
        self,
        swipe_repo: Optional[SwipeRepository] = None
    ):
        """
        Initialize service with repositories.

        Args:
            swipe_repo: SwipeRepository instance (creates new if None)
        """
        self.swipe_repo = swipe_repo or SwipeRepository()

    @staticmethod
    def parse_direction(direction: Union[str, SwipeDirection]) -> SwipeDirection:
        """Normalize "LEFT"/"left"/SwipeDirection.LEFT to a SwipeDirection."""
        if isinstance(direction, SwipeDirection):
            return direction
        try:
            return SwipeDirection(str(direction).strip().lower())
        except ValueError:
            raise InvalidSwipeError(f"Invalid swipe direction: {direction!r}")

    async def record(
        self,
        db: AsyncSession,
        user_id: UUID,
        deal_id: UUID,
        direction: Union[str, SwipeDirection]
    ) -> Swipe:
        """
        Record a user's decision on a deal.

        Args:
            db: Active database session
            user_id: UUID of the swiping user
            deal_id: UUID of the deal
            direction: "left" or "right"

        Returns:
            The persisted Swipe

        Raises:
            InvalidSwipeError: Direction is neither left nor right
            DealNotFoundError: Deal does not exist or is no longer active
            DuplicateSwipeError: The user already decided on this deal
            StorageUnavailableError: Storage timed out or is unreachable

        Example:
            swipe = await service.record(db, user.id, deal_id, "right")
            await db.commit()
        """
        parsed = self.parse_direction(direction)

        deal = await bounded(db.get(Deal, deal_id), "load deal")
        if deal is None or not deal.is_active:
            raise DealNotFoundError()

        try:
            swipe = await bounded(
                self.swipe_repo.create(db, {
                    "user_id": user_id,
                    "deal_id": deal_id,
                    "direction": parsed.value,
                }),
                "record swipe"
            )
        except IntegrityError:
            existing = await bounded(
                self.swipe_repo.get_user_swipe_on_deal(db, user_id, deal_id),
                "load existing swipe"
            )
            if existing is None:
                # Not the (user, deal) constraint; e.g. a foreign key failure
                raise
            logger.info(
                f"Duplicate swipe by user {user_id} on deal {deal_id} "
                f"(kept {existing.direction}, rejected {parsed.value})"
            )
            raise DuplicateSwipeError(existing=existing)

        logger.info(f"User {user_id} swiped {parsed.value} on deal {deal_id}")
        return swipe

    async def swiped_deal_ids(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> set[UUID]:
        """Ids of deals the user has already decided on."""
        return await bounded(self.swipe_repo.get_swiped_deal_ids(db, user_id), "load swiped deals")

    async def unswiped_deals(
        self,
        db: AsyncSession,
        user_id: UUID,
        limit: Optional[int] = None
    ) -> list[Deal]:
        """Active deals the user has not swiped on yet, newest first."""
        return await bounded(
            self.swipe_repo.get_unswiped_active_deals(db, user_id, limit=limit or self.FEED_PAGE_SIZE),
            "load deal feed"
        )
