"""
Notification WebSocket Endpoint

Live notification delivery. Each connection joins the rooms derived from
the authenticated user record:
- user_{id} for everyone
- mentor_{id} for mentors
- hod_{department} for HODs
- role_{role} for everyone

Connection URL: WS /api/v1/notifications/ws?token=<jwt>
"""

from typing import Optional
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gatepass.core.database import get_session_local
from gatepass.core.logging_config import logger
from gatepass.core.security import decode_access_subject
from gatepass.models.user import User
from gatepass.services.notification_rooms import (
    notification_room_manager, rooms_for_user, EventType,
)


router = APIRouter()

INVALID_TOKEN_CLOSE_CODE = 4001


async def get_user_from_token(token: str, db: AsyncSession) -> Optional[User]:
    """Validate JWT token and return the active user."""
    user_id = decode_access_subject(token)
    if not user_id:
        return None

    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        return None
    return user


@router.websocket("/ws")
async def notification_websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(...)
):
    """
    WebSocket endpoint for real-time notifications.

    Message format (send and receive):
    {
        "type": "event_type",
        "data": { ... }
    }

    Client events:
    - ping: Keep-alive ping
    - join_role: Re-join the rooms of the current user

    Server events:
    - connected: Rooms joined on connect
    - notification: A new notification
    - rooms_joined: Reply to join_role
    - pong: Reply to ping
    - error: Bad message
    """
    async with get_session_local()() as db:
        user = await get_user_from_token(token, db)

    if not user:
        await websocket.close(code=INVALID_TOKEN_CLOSE_CODE, reason="Invalid or expired token")
        return

    connection = await notification_room_manager.connect(websocket, user)

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                await notification_room_manager.send_error(connection, "invalid_json", "Invalid JSON message")
                continue

            event_type = data.get("type", "") if isinstance(data, dict) else ""

            if event_type == EventType.PING.value:
                await notification_room_manager.handle_ping(connection)

            elif event_type == "join_role":
                rooms = rooms_for_user(user)
                await notification_room_manager.join_rooms(connection, rooms)
                await notification_room_manager.send_event(
                    connection, EventType.ROOMS_JOINED, {"rooms": sorted(connection.rooms)}
                )

            else:
                await notification_room_manager.send_error(
                    connection, "unknown_event", f"Unknown event type: {event_type or '-'}"
                )

    except WebSocketDisconnect:
        logger.info(f"Notification WebSocket closed for user {user.id}")
    except Exception as e:
        logger.error(f"Notification WebSocket error: {e}", exc_info=True)
    finally:
        await notification_room_manager.disconnect(connection)
