"""
Match service: turns mutual right swipes into match records.

try_match runs once per right-swipe event. The uniqueness constraint on
(user_low_id, user_high_id, deal_id) is the authority on duplicate matches;
the existence check before inserting only saves a round-trip in the common
case and is not assumed to be race-free.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from dealmatch.core.database import bounded
from dealmatch.core.exceptions import CompatibilityLookupError
from dealmatch.models.match import Match
from dealmatch.models.swipe import SwipeDirection
from dealmatch.repositories.match_repository import MatchRepository
from dealmatch.repositories.swipe_repository import SwipeRepository
from dealmatch.services.compatibility_service import CompatibilityService

logger = logging.getLogger(__name__)


class MatchService:
    """
    Service for resolving and listing matches.

    Resolution for a right swipe by user U on deal D:
    1. Collect right swipes on D by other users, earliest first
    2. Skip candidates that are incompatible or whose compatibility
       cannot be evaluated right now
    3. For the first compatible candidate, return the existing match if
       there is one, otherwise insert it
    4. If the insert loses a race, return the row the winner created
    """

    def __init__(
        self,
        swipe_repo: Optional[SwipeRepository] = None,
        match_repo: Optional[MatchRepository] = None,
        compatibility_service: Optional[CompatibilityService] = None
    ):
        """
        Initialize service with repositories.

        Args:
            swipe_repo: SwipeRepository instance
            match_repo: MatchRepository instance
            compatibility_service: CompatibilityService instance
        """
        self.swipe_repo = swipe_repo or SwipeRepository()
        self.match_repo = match_repo or MatchRepository()
        self.compatibility_service = compatibility_service or CompatibilityService()

    async def try_match(
        self,
        db: AsyncSession,
        user_id: UUID,
        deal_id: UUID
    ) -> Optional[Match]:
        """
        Find or create the match produced by a user's right swipe on a deal.

        Args:
            db: Active database session
            user_id: UUID of the user who just swiped right
            deal_id: UUID of the deal

        Returns:
            The created or pre-existing Match, or None when no compatible
            counterpart has swiped right yet

        Raises:
            StorageUnavailableError: Storage timed out or is unreachable;
                nothing was written and the call can be retried

        Example:
            swipe = await swipe_service.record(db, user.id, deal_id, "right")
            await db.commit()
            match = await match_service.try_match(db, user.id, deal_id)
            await db.commit()
        """
        own_swipe = await bounded(
            self.swipe_repo.get_user_swipe_on_deal(db, user_id, deal_id),
            "load own swipe"
        )
        if own_swipe is None or own_swipe.direction != SwipeDirection.RIGHT.value:
            logger.debug(f"No right swipe by user {user_id} on deal {deal_id}; nothing to match")
            return None

        candidates = await bounded(
            self.swipe_repo.get_right_swipes_on_deal(db, deal_id, exclude_user_id=user_id),
            "load match candidates"
        )

        for candidate in candidates:
            counterpart_id = candidate.user_id
            try:
                compatible = await self.compatibility_service.check(db, user_id, counterpart_id)
            except CompatibilityLookupError as e:
                logger.warning(
                    f"Compatibility lookup failed for {user_id} <-> {counterpart_id} "
                    f"on deal {deal_id}, skipping: {e}"
                )
                continue

            if not compatible:
                continue

            existing = await bounded(
                self.match_repo.get_for_pair(db, user_id, counterpart_id, deal_id),
                "check existing match"
            )
            if existing is not None:
                return existing

            return await self._create_or_get_winner(db, user_id, counterpart_id, deal_id)

        return None

    async def _create_or_get_winner(
        self,
        db: AsyncSession,
        user_id: UUID,
        counterpart_id: UUID,
        deal_id: UUID
    ) -> Match:
        try:
            match = await bounded(
                self.match_repo.create_for_pair(db, user_id, counterpart_id, deal_id),
                "create match"
            )
        except IntegrityError:
            winner = await bounded(
                self.match_repo.get_for_pair(db, user_id, counterpart_id, deal_id),
                "load concurrent match"
            )
            if winner is None:
                raise
            logger.info(
                f"Concurrent match insert for ({user_id}, {counterpart_id}) on deal {deal_id}; "
                f"using existing match {winner.id}"
            )
            return winner

        logger.info(f"Match {match.id} created: {user_id} + {counterpart_id} on deal {deal_id}")
        return match

    async def list_matches(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> list[dict]:
        """
        Get the user's matches, newest first, with counterpart and deal names.

        Returns:
            List of dicts with id, deal_id, deal_name, matched_user_id,
            matched_user_name and created_at
        """
        matches = await bounded(self.match_repo.get_user_matches(db, user_id), "list matches")

        items = []
        for match in matches:
            other = match.user2 if match.user1_id == user_id else match.user1
            items.append({
                "id": match.id,
                "deal_id": match.deal_id,
                "deal_name": match.deal.merchant_name if match.deal else "Unknown Deal",
                "matched_user_id": match.other_user_id(user_id),
                "matched_user_name": (other.display_name if other else None) or "Unknown User",
                "created_at": match.created_at,
            })
        return items
