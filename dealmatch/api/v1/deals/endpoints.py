from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from dealmatch.core.database import get_db
from dealmatch.api.deps import get_current_user
from dealmatch.models.user import User
from dealmatch.schemas.swipe import DealFeedItem
from dealmatch.services.swipe_service import SwipeService

router = APIRouter()


@router.get("/feed", response_model=List[DealFeedItem])
async def get_deal_feed(
    limit: int = Query(50, ge=1, le=100, description="Maximum number of deals"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Active deals the current user has not swiped on yet, newest first."""
    return await SwipeService().unswiped_deals(db, current_user.id, limit=limit)
