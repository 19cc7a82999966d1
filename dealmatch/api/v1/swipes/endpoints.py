from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from dealmatch.core.database import get_db
from dealmatch.core.exceptions import DealMatchError, DuplicateSwipeError
from dealmatch.api.deps import get_current_user
from dealmatch.models.match import Match
from dealmatch.models.swipe import SwipeDirection
from dealmatch.models.user import User
from dealmatch.schemas.swipe import SwipeCreate, SwipeResult
from dealmatch.services.match_service import MatchService
from dealmatch.services.swipe_service import SwipeService

logger = logging.getLogger(__name__)

router = APIRouter()


async def _resolve_match(db: AsyncSession, user_id: UUID, deal_id: UUID) -> Optional[Match]:
    """Run match resolution for a stored right swipe; failures leave the swipe intact."""
    try:
        match = await MatchService().try_match(db, user_id, deal_id)
        await db.commit()
        return match
    except (DealMatchError, SQLAlchemyError) as e:
        logger.warning(f"Match resolution failed for user {user_id} on deal {deal_id}: {e}")
        return None


@router.post("", response_model=SwipeResult)
async def create_swipe(
    swipe_data: SwipeCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a swipe and, for a right swipe, try to resolve a match.

    The swipe is committed before matching starts. If matching fails the
    swipe still stands and the response carries ``match: null``. Resending
    the swipe answers 409 but reruns resolution for a stored right swipe, so
    a retry after a transient failure still produces the match.
    """
    swipe_service = SwipeService()
    try:
        swipe = await swipe_service.record(db, current_user.id, swipe_data.deal_id, swipe_data.direction)
    except DuplicateSwipeError as e:
        if e.existing is not None and e.existing.direction == SwipeDirection.RIGHT.value:
            await _resolve_match(db, current_user.id, swipe_data.deal_id)
        raise
    await db.commit()

    match = None
    if swipe.direction == SwipeDirection.RIGHT.value:
        match = await _resolve_match(db, current_user.id, swipe_data.deal_id)

    return {"swipe": swipe, "match": match}
