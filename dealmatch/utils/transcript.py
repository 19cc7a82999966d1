"""
Local chat transcript with optimistic entries.

This is the receiver-side half of the chat pipeline, used by clients of the
realtime channel (and by the test-suite to exercise delivery semantics).

A message typed by the local user is shown immediately as a pending entry
keyed by a client-generated id. When the server confirms it (the same id is
sent as the idempotency key, so the persisted message carries it), the
pending entry is replaced; if the send fails it is rolled back. Messages
received from the channel are merged by id, so redelivery never duplicates
an entry.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Union
import uuid

from pydantic import BaseModel, Field

from dealmatch.schemas.chat import MessageEvent


class PendingMessage(BaseModel):
    """Optimistic entry shown before the server confirms it."""
    id: uuid.UUID
    sender_id: uuid.UUID
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    pending: bool = True


TranscriptEntry = Union[MessageEvent, PendingMessage]


def _sort_key(entry: TranscriptEntry):
    created = entry.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (created, str(entry.id))


class ChatTranscript:
    """
    Two-phase transcript of one conversation.

    Example:
        transcript = ChatTranscript(match_id)
        pending = transcript.add_pending(me, "hi")
        message = await send(text="hi", client_id=pending.id)
        transcript.confirm(message)
        transcript.merge(event_from_channel)
    """

    def __init__(self, match_id: uuid.UUID, history: Optional[List[MessageEvent]] = None):
        self.match_id = match_id
        self._entries: Dict[uuid.UUID, TranscriptEntry] = {}
        for message in history or []:
            self.merge(message)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, message_id: uuid.UUID) -> bool:
        return message_id in self._entries

    def add_pending(
        self,
        sender_id: uuid.UUID,
        text: str,
        client_id: Optional[uuid.UUID] = None
    ) -> PendingMessage:
        """Show a locally composed message before the server confirms it."""
        entry = PendingMessage(id=client_id or uuid.uuid4(), sender_id=sender_id, text=text)
        self._entries[entry.id] = entry
        return entry

    def confirm(self, message: MessageEvent) -> bool:
        """
        Replace the pending entry with the persisted message.

        Returns:
            False when the message belongs to another conversation
        """
        if message.match_id != self.match_id:
            return False
        self._entries[message.id] = message
        return True

    def reject(self, client_id: uuid.UUID) -> bool:
        """Roll back a pending entry whose send failed. Confirmed entries stay."""
        entry = self._entries.get(client_id)
        if isinstance(entry, PendingMessage):
            del self._entries[client_id]
            return True
        return False

    def merge(self, message: MessageEvent) -> bool:
        """
        Insert a message received from history or the channel.

        A pending entry with the same id is our own send coming back (e.g. the
        ack was lost and history was reloaded), so it is confirmed in place.

        Returns:
            False when a confirmed entry with the id is already present (the
            message is discarded) or the message belongs to another match
        """
        if message.match_id != self.match_id:
            return False
        if isinstance(self._entries.get(message.id), MessageEvent):
            return False
        self._entries[message.id] = message
        return True

    def messages(self) -> List[TranscriptEntry]:
        """All entries in display order: created_at, then id."""
        return sorted(self._entries.values(), key=_sort_key)

    def pending(self) -> List[PendingMessage]:
        return [e for e in self.messages() if isinstance(e, PendingMessage)]
