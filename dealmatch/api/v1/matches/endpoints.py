"""
API endpoints for matches and their chat transcripts.

This module provides endpoints for users to:
- List their matches
- Consume "new match" notifications exactly once
- Read and append to a match's chat history
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import uuid

from dealmatch.core.chat_channel import chat_channel
from dealmatch.core.database import get_db
from dealmatch.core.exceptions import StorageUnavailableError
from dealmatch.api.deps import get_current_user
from dealmatch.models.user import User
from dealmatch.schemas.chat import MessageCreate, MessageEvent, MessageHistoryResponse
from dealmatch.schemas.match import (
    ConsumedMatchesResponse,
    MatchListResponse,
    PendingMatchesResponse,
)
from dealmatch.services.chat_service import ChatService
from dealmatch.services.match_notification_service import MatchNotificationService
from dealmatch.services.match_service import MatchService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=MatchListResponse)
async def list_matches(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's matches, newest first."""
    items = await MatchService().list_matches(db, current_user.id)
    return {"items": items, "total": len(items)}


@router.post("/notifications/consume", response_model=ConsumedMatchesResponse)
async def consume_match_notifications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Return matches the user has not been told about and mark them notified.

    Called when the app comes to the foreground. Each match is returned to
    each of its two users once.
    """
    matches = await MatchNotificationService().mark_and_consume(db, current_user.id)
    await db.commit()
    return {"items": matches, "count": len(matches)}


@router.get("/notifications/pending", response_model=PendingMatchesResponse)
async def get_pending_match_notifications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Count matches waiting to be surfaced, without consuming them."""
    count = await MatchNotificationService().pending_count(db, current_user.id)
    return {"count": count}


@router.get("/{match_id}/messages", response_model=MessageHistoryResponse)
async def get_messages(
    match_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the full chat history of a match, oldest first.

    Also the recovery path for anything missed while the realtime channel
    was disconnected.
    """
    service = ChatService()
    await service.get_match_for_participant(db, match_id, current_user.id)
    messages = await service.load_history(db, match_id)
    return {"items": messages, "total": len(messages)}


@router.post("/{match_id}/messages", response_model=MessageEvent, status_code=status.HTTP_201_CREATED)
async def send_message(
    match_id: uuid.UUID,
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Append a message and broadcast it to the other participant.

    Resending with the same client_id returns the stored message. A failed
    broadcast does not fail the request; the peer picks the message up from
    history.
    """
    message = await ChatService().append(
        db, match_id, current_user.id, message_data.text, message_id=message_data.client_id
    )
    await db.commit()

    try:
        await chat_channel.broadcast(message)
    except StorageUnavailableError as e:
        logger.warning(f"Broadcast of message {message.id} failed, peers will load it from history: {e}")

    return message
