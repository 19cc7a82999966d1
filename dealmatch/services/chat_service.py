"""
Chat service: the persisted, append-only transcript of each match.

Messages are validated locally before any storage round-trip. A client may
supply its own message id; resending with the same id returns the stored
message instead of creating a second one, which makes retries after a
network failure safe.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from dealmatch.core.config import settings
from dealmatch.core.database import bounded
from dealmatch.core.exceptions import (
    InvalidMessageError,
    InvalidParticipantError,
    MatchNotFoundError,
    MessageConflictError,
)
from dealmatch.models.match import Match
from dealmatch.models.message import Message
from dealmatch.repositories.match_repository import MatchRepository
from dealmatch.repositories.message_repository import MessageRepository

logger = logging.getLogger(__name__)


class ChatService:
    """
    Service for appending to and reading chat transcripts.

    Provides:
    - Participant checks for a match
    - Idempotent message append
    - Chronological history
    """

    def __init__(
        self,
        match_repo: Optional[MatchRepository] = None,
        message_repo: Optional[MessageRepository] = None,
        max_length: Optional[int] = None
    ):
        """
        Initialize service with repositories.

        Args:
            match_repo: MatchRepository instance
            message_repo: MessageRepository instance
            max_length: Maximum message length (defaults to settings.chat_max_message_length)
        """
        self.match_repo = match_repo or MatchRepository()
        self.message_repo = message_repo or MessageRepository()
        self.max_length = max_length or settings.chat_max_message_length

    def validate_text(self, text: Optional[str]) -> str:
        """Return the stripped text or raise InvalidMessageError."""
        if not isinstance(text, str):
            raise InvalidMessageError("Message text is required")
        cleaned = text.strip()
        if not cleaned:
            raise InvalidMessageError("Message text must not be blank")
        if len(cleaned) > self.max_length:
            raise InvalidMessageError(f"Message text exceeds {self.max_length} characters")
        return cleaned

    async def get_match_for_participant(
        self,
        db: AsyncSession,
        match_id: UUID,
        user_id: UUID
    ) -> Match:
        """
        Load a match and verify the user is one of its two participants.

        Raises:
            MatchNotFoundError: No match with this id
            InvalidParticipantError: User is not part of the match
        """
        match = await bounded(self.match_repo.get(db, match_id), "load match")
        if match is None:
            raise MatchNotFoundError()
        if not match.is_participant(user_id):
            logger.warning(f"User {user_id} is not a participant of match {match_id}")
            raise InvalidParticipantError()
        return match

    async def append(
        self,
        db: AsyncSession,
        match_id: UUID,
        sender_id: UUID,
        text: str,
        message_id: Optional[UUID] = None
    ) -> Message:
        """
        Persist a new message.

        Args:
            db: Active database session (caller commits)
            match_id: UUID of the match
            sender_id: UUID of the sending user
            text: Message body
            message_id: Optional client-generated id used as idempotency key

        Returns:
            The persisted Message with its id and created_at

        Raises:
            InvalidMessageError: Text is blank or too long (no storage call made)
            MatchNotFoundError: Unknown match
            InvalidParticipantError: Sender is not part of the match
            MessageConflictError: message_id already used by another sender or match
            StorageUnavailableError: Storage timed out or is unreachable

        Example:
            message = await service.append(db, match.id, user.id, "hi", message_id=client_id)
            await db.commit()
            await chat_channel.broadcast(message)
        """
        cleaned = self.validate_text(text)
        await self.get_match_for_participant(db, match_id, sender_id)

        data = {"match_id": match_id, "sender_id": sender_id, "text": cleaned}
        if message_id is not None:
            existing = await self._get_resent(db, message_id, match_id, sender_id)
            if existing is not None:
                return existing
            data["id"] = message_id

        try:
            message = await bounded(self.message_repo.create(db, data), "append message")
        except IntegrityError:
            if message_id is None:
                raise
            # Lost a race against a concurrent resend of the same message
            existing = await self._get_resent(db, message_id, match_id, sender_id)
            if existing is None:
                raise
            return existing

        logger.info(f"Message {message.id} appended to match {match_id} by {sender_id}")
        return message

    async def _get_resent(
        self,
        db: AsyncSession,
        message_id: UUID,
        match_id: UUID,
        sender_id: UUID
    ) -> Optional[Message]:
        """Return the stored message for a resent id, or None if the id is unused."""
        existing = await bounded(self.message_repo.get(db, message_id), "load existing message")
        if existing is None:
            return None
        if existing.match_id != match_id or existing.sender_id != sender_id:
            raise MessageConflictError()
        logger.info(f"Message {message_id} already stored; returning existing row")
        return existing

    async def load_history(
        self,
        db: AsyncSession,
        match_id: UUID
    ) -> list[Message]:
        """All messages of the match, oldest first (ties by id)."""
        return await bounded(self.message_repo.get_history(db, match_id), "load message history")
