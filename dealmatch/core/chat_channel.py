"""
Realtime fan-out of chat messages, one logical channel per match.

A Subscription is a cancellable stream of MessageEvents backed by an
asyncio.Queue. Delivery is at-least-once, so every subscription drops ids it
has already seen and never receives messages its own user sent (the sender
already shows them from its optimistic local copy).

Without a relay, publish fans out synchronously to the subscriptions of this
process, which keeps same-sender order. With the Redis relay, publishes go
through the Redis channel named by ``channel_name`` and a listener task feeds
them back to local subscriptions, so several API workers share one channel.

Nothing is redelivered after a transport outage; clients re-subscribe and
reload history through ChatService.load_history.
"""

from __future__ import annotations

import asyncio
from collections import deque
import inspect
import logging
import uuid
from typing import Awaitable, Callable, Deque, Dict, Optional, Set, Union
from uuid import UUID

from pydantic import ValidationError

from dealmatch.core.cache import get_redis
from dealmatch.core.config import settings
from dealmatch.core.exceptions import ChannelClosedError, InvalidParticipantError, StorageUnavailableError
from dealmatch.schemas.chat import MessageEvent

logger = logging.getLogger(__name__)

MessageCallback = Callable[[MessageEvent], Union[None, Awaitable[None]]]

_CLOSED = object()


def channel_name(match_id: UUID) -> str:
    """Deterministic channel name for a match."""
    return f"match:{match_id}:messages"


def to_event(message) -> MessageEvent:
    """Accept a MessageEvent, a Message row or a payload dict."""
    if isinstance(message, MessageEvent):
        return message
    if isinstance(message, dict):
        return MessageEvent.model_validate(message)
    return MessageEvent.model_validate(message, from_attributes=True)


class Subscription:
    """
    One viewer's live feed of a match's channel.

    Iterate with ``async for event in subscription`` or pass ``on_message``
    to ChatChannel.subscribe. Iteration ends after unsubscribe.

    Duplicate detection covers the last SEEN_WINDOW delivered ids; older
    redeliveries fall through to the receiver's transcript merge.
    """

    SEEN_WINDOW = 1024

    def __init__(self, match_id: UUID, user_id: UUID, on_message: Optional[MessageCallback] = None):
        self.id = uuid.uuid4()
        self.match_id = match_id
        self.user_id = user_id
        self.closed = False
        self._on_message = on_message
        self._queue: asyncio.Queue = asyncio.Queue()
        self._seen: Set[UUID] = set()
        self._seen_order: Deque[UUID] = deque()
        self._pump: Optional[asyncio.Task] = None

    @property
    def channel_name(self) -> str:
        return channel_name(self.match_id)

    def deliver(self, event: MessageEvent) -> bool:
        """Queue an event unless it is an echo, a duplicate or arrives after close."""
        if self.closed:
            return False
        if event.match_id != self.match_id:
            return False
        if event.sender_id == self.user_id:
            return False
        if event.id in self._seen:
            logger.debug(f"[ChatChannel] Dropping duplicate message {event.id} for subscription {self.id}")
            return False
        self._remember(event.id)
        self._queue.put_nowait(event)
        return True

    def _remember(self, message_id: UUID) -> None:
        self._seen.add(message_id)
        self._seen_order.append(message_id)
        if len(self._seen_order) > self.SEEN_WINDOW:
            self._seen.discard(self._seen_order.popleft())

    def pending(self) -> int:
        """Events queued but not yet consumed."""
        return self._queue.qsize()

    def _start_pump(self) -> None:
        self._pump = asyncio.create_task(self._run_callbacks())

    async def _run_callbacks(self) -> None:
        async for event in self:
            try:
                result = self._on_message(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"[ChatChannel] Subscriber callback failed for {self.id}: {e}", exc_info=True)

    async def _close(self) -> None:
        self.closed = True
        self._queue.put_nowait(_CLOSED)
        if self._pump is not None and self._pump is not asyncio.current_task():
            self._pump.cancel()
            try:
                await self._pump
            except asyncio.CancelledError:
                pass

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> MessageEvent:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self.closed:
            raise StopAsyncIteration
        return item


class RedisRelay:
    """
    Cross-process transport for chat events over Redis pub/sub.

    Publishes JSON payloads on ``match:{id}:messages`` and listens on the
    ``match:*:messages`` pattern. A dropped listener connection is re-opened
    after ``reconnect_delay`` seconds.
    """

    PATTERN = "match:*:messages"

    def __init__(self, redis_factory=None, reconnect_delay: float = 1.0):
        self._redis_factory = redis_factory or get_redis
        self.reconnect_delay = reconnect_delay
        self._task: Optional[asyncio.Task] = None

    async def publish(self, event: MessageEvent) -> None:
        try:
            redis = await self._redis_factory()
            await redis.publish(channel_name(event.match_id), event.model_dump_json())
        except Exception as e:
            logger.error(f"[RedisRelay] Publish failed for message {event.id}: {e}")
            raise StorageUnavailableError("Realtime channel unavailable") from e

    async def start(self, on_event: Callable[[MessageEvent], int]) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._listen_forever(on_event))
            logger.info(f"[RedisRelay] Listening on {self.PATTERN}")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("[RedisRelay] Listener stopped")

    async def _listen_forever(self, on_event: Callable[[MessageEvent], int]) -> None:
        while True:
            try:
                await self._listen(on_event)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[RedisRelay] Listener dropped, reconnecting in {self.reconnect_delay}s: {e}")
                await asyncio.sleep(self.reconnect_delay)

    async def _listen(self, on_event: Callable[[MessageEvent], int]) -> None:
        redis = await self._redis_factory()
        pubsub = redis.pubsub()
        await pubsub.psubscribe(self.PATTERN)
        try:
            async for raw in pubsub.listen():
                if raw.get("type") != "pmessage":
                    continue
                try:
                    event = MessageEvent.model_validate_json(raw["data"])
                except ValidationError:
                    logger.warning(f"[RedisRelay] Ignoring malformed payload on {raw.get('channel')}")
                    continue
                on_event(event)
        finally:
            await pubsub.aclose()


class ChatChannel:
    """
    Registry of live subscriptions, keyed by match id.

    subscribe/unsubscribe must be paired: every successful subscribe is
    released by exactly one unsubscribe (extra calls are no-ops).
    """

    def __init__(self, relay: Optional[RedisRelay] = None):
        # match_id → Set[Subscription]
        self.subscriptions: Dict[UUID, Set[Subscription]] = {}
        self.relay = relay

    async def subscribe(
        self,
        match_id: UUID,
        self_user_id: UUID,
        on_message: Optional[MessageCallback] = None
    ) -> Subscription:
        """
        Open a live feed for a match.

        Args:
            match_id: UUID of the match
            self_user_id: UUID of the viewing user; their own messages are suppressed
            on_message: Optional callback (sync or async) invoked per event in order

        Returns:
            The Subscription handle
        """
        subscription = Subscription(match_id, self_user_id, on_message)
        self.subscriptions.setdefault(match_id, set()).add(subscription)
        if on_message is not None:
            subscription._start_pump()

        logger.info(
            f"[ChatChannel] User {self_user_id} subscribed to {subscription.channel_name} "
            f"- subscribers: {len(self.subscriptions[match_id])}"
        )
        return subscription

    async def publish(self, subscription: Subscription, message) -> int:
        """
        Broadcast a just-persisted message from the subscription's user.

        Raises:
            ChannelClosedError: The subscription was already released
            InvalidParticipantError: Message belongs to another match or sender

        Returns:
            Number of local subscriptions that accepted the event
        """
        if subscription.closed:
            raise ChannelClosedError()
        event = to_event(message)
        if event.match_id != subscription.match_id or event.sender_id != subscription.user_id:
            raise InvalidParticipantError("Message does not belong to this subscription")
        return await self.broadcast(event)

    async def broadcast(self, message) -> int:
        """Fan out a persisted message to every subscriber of its match."""
        event = to_event(message)
        if self.relay is not None:
            await self.relay.publish(event)
            return 0
        return self.fan_out(event)

    def fan_out(self, event: MessageEvent) -> int:
        """Deliver to local subscriptions without awaiting, preserving order."""
        delivered = 0
        for subscription in list(self.subscriptions.get(event.match_id, ())):
            if subscription.deliver(event):
                delivered += 1
        logger.debug(f"[ChatChannel] Message {event.id} delivered to {delivered} subscriber(s)")
        return delivered

    async def unsubscribe(self, subscription: Subscription) -> None:
        """Release a subscription. No callbacks run after this returns."""
        subscribers = self.subscriptions.get(subscription.match_id)
        if subscribers is None or subscription not in subscribers:
            logger.debug("[ChatChannel] Unsubscribe called for untracked subscription")
            return

        subscribers.discard(subscription)
        if not subscribers:
            del self.subscriptions[subscription.match_id]
        await subscription._close()

        logger.info(f"[ChatChannel] User {subscription.user_id} left {subscription.channel_name}")

    async def start(self) -> None:
        if self.relay is not None:
            await self.relay.start(self.fan_out)

    async def stop(self) -> None:
        if self.relay is not None:
            await self.relay.stop()

    def get_subscription_count(self) -> dict:
        """Get statistics about active subscriptions."""
        return {
            "total_subscriptions": sum(len(subs) for subs in self.subscriptions.values()),
            "active_matches": len(self.subscriptions),
        }


def build_chat_channel(backend: str) -> ChatChannel:
    if backend == "redis":
        return ChatChannel(relay=RedisRelay())
    return ChatChannel()


# Global singleton instance
chat_channel = build_chat_channel(settings.realtime_backend)
