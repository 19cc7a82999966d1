"""
Match notification tracking.

Decouples "a match was created" from "a user was told about it". Both sides
of a match start unnotified; each device asks for its owner's unconsumed
matches when it comes to the foreground, so offline or backgrounded clients
catch up later without losing anything.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from dealmatch.core.database import bounded
from dealmatch.models.match import Match
from dealmatch.repositories.match_repository import MatchRepository

logger = logging.getLogger(__name__)


class MatchNotificationService:
    """Service that hands out each side's "new match" exactly once."""

    def __init__(self, match_repo: Optional[MatchRepository] = None):
        self.match_repo = match_repo or MatchRepository()

    async def mark_and_consume(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> list[Match]:
        """
        Claim and return every match the user has not been notified about.

        The user's flag is set true on exactly the returned matches. Claims
        are conditional updates, so a second call racing the first gets only
        what the first did not claim; once the caller commits, repeated calls
        return an empty list.

        Args:
            db: Active database session (caller commits)
            user_id: UUID of the user

        Returns:
            Newly consumed matches, oldest first

        Example:
            new_matches = await service.mark_and_consume(db, user.id)
            await db.commit()
            if new_matches:
                show_banner(len(new_matches))
        """
        claimed_ids = await bounded(
            self.match_repo.claim_unnotified(db, user_id),
            "claim match notifications"
        )
        if not claimed_ids:
            return []

        matches = await bounded(self.match_repo.get_many(db, claimed_ids), "load claimed matches")
        logger.info(f"User {user_id} consumed {len(matches)} new match notification(s)")
        return matches

    async def pending_count(self, db: AsyncSession, user_id: UUID) -> int:
        """Number of matches still waiting to be surfaced to the user."""
        return await bounded(self.match_repo.count_unnotified(db, user_id), "count pending matches")
