"""
WebSocket API endpoint for live match chat.

This module exposes the realtime channel of a match over a WebSocket
connection. Persisted history stays available over HTTP; this socket only
carries messages sent while it is open.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import json
from typing import Optional
from uuid import UUID
import asyncio

from dealmatch.core.config import settings
from dealmatch.core.database import AsyncSessionLocal
from dealmatch.core.chat_channel import Subscription, chat_channel
from dealmatch.core.exceptions import DealMatchError
from dealmatch.core.logging import bind_socket_context
from dealmatch.api.deps import load_user_from_token
from dealmatch.schemas.chat import MessageCreate, MessageEvent
from dealmatch.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter()


async def authorize_channel(token: str, match_id: UUID, db: AsyncSession) -> Optional[UUID]:
    """
    Authenticate a socket and check the user belongs to the match.

    Args:
        token: JWT access token
        match_id: UUID of the match the client wants to join
        db: Database session (should be short-lived)

    Returns:
        The user's UUID if allowed, None otherwise
    """
    user = await load_user_from_token(token, db)
    if user is None:
        logger.debug("WebSocket auth failed: invalid token or unknown user")
        return None

    try:
        await ChatService().get_match_for_participant(db, match_id, user.id)
    except DealMatchError as e:
        logger.debug(f"WebSocket auth failed for user {user.id} on match {match_id}: {e.detail}")
        return None

    return user.id


@router.websocket("/ws/matches/{match_id}")
async def match_chat_endpoint(websocket: WebSocket, match_id: UUID):
    """
    WebSocket endpoint for the chat channel of one match.

    Protocol:
    1. Client connects
    2. Client sends {"type": "authenticate", "token": ...}
    3. Server responds with {"type": "authenticated", "channel": ...} or closes
    4. Server pushes {"type": "message", "message": {...}} for the peer's messages
    5. Client sends {"type": "send", "text": ..., "client_id": ...}; server acks
    6. Server sends periodic pings, client responds with pongs

    Note:
    Database sessions are opened per operation rather than held for the
    socket's lifetime, so idle connections do not pin pool slots.
    """
    subscription: Optional[Subscription] = None
    user_id: Optional[UUID] = None
    pump_task = None
    heartbeat_task = None

    try:
        await websocket.accept()

        # Wait for authentication message (with timeout)
        try:
            auth_data = await asyncio.wait_for(
                websocket.receive_json(),
                timeout=settings.websocket_auth_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"WebSocket auth timeout for match {match_id}")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication timeout")
            return

        if (not isinstance(auth_data, dict) or auth_data.get("type") != "authenticate"
                or not auth_data.get("token")):
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication required")
            return

        async with AsyncSessionLocal() as db:
            user_id = await authorize_channel(auth_data["token"], match_id, db)

        if user_id is None:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Not allowed on this channel")
            return

        bind_socket_context(match_id, user_id)
        subscription = await chat_channel.subscribe(match_id, user_id)
        await websocket.send_json({
            "type": "authenticated",
            "channel": subscription.channel_name,
        })

        pump_task = asyncio.create_task(forward_messages(websocket, subscription))
        heartbeat_task = asyncio.create_task(
            send_heartbeat(websocket, settings.websocket_heartbeat_interval)
        )

        while True:
            try:
                data = await websocket.receive_json()
                if not isinstance(data, dict):
                    await websocket.send_json({
                        "type": "error",
                        "code": "INVALID_MESSAGE_FORMAT",
                        "message": "Message must be a JSON object"
                    })
                    continue

                message_type = data.get("type")

                if message_type == "pong":
                    continue

                if message_type == "send":
                    await handle_send(websocket, subscription, data)
                else:
                    await websocket.send_json({
                        "type": "error",
                        "code": "UNKNOWN_MESSAGE_TYPE",
                        "message": f"Unsupported message type: {message_type}"
                    })

            except WebSocketDisconnect:
                logger.info(f"WebSocket disconnected: user {user_id} on match {match_id}")
                break
            except json.JSONDecodeError:
                await websocket.send_json({
                    "type": "error",
                    "code": "INVALID_MESSAGE_FORMAT",
                    "message": "Message must be valid JSON"
                })

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected before joining match {match_id}")
    except Exception as e:
        logger.error(f"WebSocket error on match {match_id}: {e}", exc_info=True)

    finally:
        if subscription is not None:
            await chat_channel.unsubscribe(subscription)

        for task in (pump_task, heartbeat_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass


async def handle_send(websocket: WebSocket, subscription: Subscription, data: dict) -> None:
    """
    Persist a message typed on the socket, then publish and acknowledge it.

    Validation and storage errors are reported to the client as error frames
    carrying the client_id so it can roll back its optimistic copy.
    """
    client_id = data.get("client_id")
    try:
        payload = MessageCreate.model_validate({"text": data.get("text"), "client_id": client_id})
    except ValidationError:
        await websocket.send_json({
            "type": "error",
            "code": "INVALID_MESSAGE",
            "client_id": client_id,
            "message": "Message text must be a non-empty string"
        })
        return

    try:
        async with AsyncSessionLocal() as db:
            message = await ChatService().append(
                db,
                subscription.match_id,
                subscription.user_id,
                payload.text,
                message_id=payload.client_id
            )
            await db.commit()
        event = MessageEvent.model_validate(message)
    except DealMatchError as e:
        await websocket.send_json({
            "type": "error",
            "code": e.code,
            "client_id": client_id,
            "retryable": e.retryable,
            "message": e.detail
        })
        return

    try:
        await chat_channel.publish(subscription, event)
    except DealMatchError as e:
        logger.warning(f"Publish of message {event.id} failed, peers will load it from history: {e.detail}")

    await websocket.send_json({
        "type": "ack",
        "client_id": client_id,
        "message": event.model_dump(mode="json")
    })


async def forward_messages(websocket: WebSocket, subscription: Subscription):
    """Push the peer's messages to the socket in arrival order."""
    try:
        async for event in subscription:
            await websocket.send_json({
                "type": "message",
                "message": event.model_dump(mode="json")
            })
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.error(f"Forwarding error on {subscription.channel_name}: {e}")


async def send_heartbeat(websocket: WebSocket, interval: int = 30):
    """
    Send periodic ping messages to keep connection alive.

    Args:
        websocket: WebSocket connection
        interval: Seconds between pings
    """
    try:
        while True:
            await asyncio.sleep(interval)
            await websocket.send_json({"type": "ping"})
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.error(f"Heartbeat error: {e}")
