"""
Notification Room Manager

Keeps the live WebSocket connections of the API process grouped into
notification rooms:
- user_{id}:        every connection of that user
- mentor_{id}:      mentors, for passes awaiting their approval
- hod_{department}: HODs of a department
- role_{role}:      every connection of a role (security alerts)

A user may be connected from several tabs or devices, so rooms hold
connections rather than users.
"""

import asyncio
from typing import Dict, List, Set, Any
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from fastapi import WebSocket

from gatepass.core.logging_config import logger
from gatepass.core.types import generate_uuid, utcnow
from gatepass.models.user import User, UserRole


class EventType(str, Enum):
    """WebSocket event types"""
    CONNECTED = "connected"
    NOTIFICATION = "notification"
    ROOMS_JOINED = "rooms_joined"
    PING = "ping"
    PONG = "pong"
    ERROR = "error"


def user_room(user_id: str) -> str:
    return f"user_{user_id}"


def mentor_room(user_id: str) -> str:
    return f"mentor_{user_id}"


def hod_room(department: str) -> str:
    return f"hod_{department}"


def role_room(role: str) -> str:
    return f"role_{role}"


def rooms_for_user(user: User) -> List[str]:
    """Rooms a user belongs to, derived from the user record only"""
    rooms = [user_room(str(user.id)), role_room(user.role.value)]
    if user.role == UserRole.MENTOR:
        rooms.append(mentor_room(str(user.id)))
    elif user.role == UserRole.HOD and user.department:
        rooms.append(hod_room(user.department))
    return rooms


@dataclass(eq=False)
class ClientConnection:
    """One WebSocket connection of an authenticated user"""
    websocket: WebSocket
    user_id: str
    connection_id: str = field(default_factory=generate_uuid)
    rooms: Set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=utcnow)
    last_activity: datetime = field(default_factory=utcnow)


class NotificationRoomManager:
    """
    Manages WebSocket connections and room broadcast for notifications.

    Also acts as the in-process notification publisher: the notification
    service calls ``publish`` with a room name and a payload.
    """

    def __init__(self):
        # room -> connections
        self._rooms: Dict[str, Set[ClientConnection]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user: User) -> ClientConnection:
        """Accept a connection and join it to the user's rooms."""
        await websocket.accept()

        connection = ClientConnection(websocket=websocket, user_id=str(user.id))
        await self.join_rooms(connection, rooms_for_user(user))

        logger.info(f"WebSocket connected: user {connection.user_id} rooms={sorted(connection.rooms)}")

        await self.send_event(connection, EventType.CONNECTED, {
            "user_id": connection.user_id,
            "rooms": sorted(connection.rooms),
        })
        return connection

    async def join_rooms(self, connection: ClientConnection, rooms: List[str]):
        async with self._lock:
            for room in rooms:
                self._rooms.setdefault(room, set()).add(connection)
                connection.rooms.add(room)

    async def disconnect(self, connection: ClientConnection):
        """Remove a connection from every room it joined."""
        async with self._lock:
            for room in list(connection.rooms):
                members = self._rooms.get(room)
                if members is None:
                    continue
                members.discard(connection)
                if not members:
                    del self._rooms[room]
            connection.rooms.clear()

        logger.info(f"WebSocket disconnected: user {connection.user_id}")

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    def online_user_ids(self) -> Set[str]:
        return {
            conn.user_id
            for members in self._rooms.values()
            for conn in members
        }

    async def publish(self, room: str, payload: Dict[str, Any]) -> int:
        """
        Push a notification payload to every connection in a room.

        Returns the number of connections that received it.
        """
        return await self.broadcast(room, EventType.NOTIFICATION, payload)

    async def broadcast(
        self,
        room: str,
        event_type: EventType,
        data: Dict[str, Any],
    ) -> int:
        members = list(self._rooms.get(room, ()))
        if not members:
            return 0

        delivered = 0
        dead_connections = []

        for connection in members:
            if await self.send_event(connection, event_type, data):
                delivered += 1
            else:
                dead_connections.append(connection)

        for connection in dead_connections:
            await self.disconnect(connection)

        return delivered

    async def send_error(self, connection: ClientConnection, error: str, message: str):
        await self.send_event(connection, EventType.ERROR, {"error": error, "message": message})

    async def handle_ping(self, connection: ClientConnection):
        """Handle ping and respond with pong."""
        await self.send_event(connection, EventType.PONG, {"server_time": utcnow().isoformat()})

    async def send_event(
        self,
        connection: ClientConnection,
        event_type: EventType,
        data: Dict[str, Any],
    ) -> bool:
        message = {
            "type": event_type.value,
            "data": data,
            "timestamp": utcnow().isoformat()
        }
        try:
            await connection.websocket.send_json(message)
        except Exception as e:
            logger.error(f"Error sending to user {connection.user_id}: {e}")
            return False
        connection.last_activity = utcnow()
        return True


# Singleton instance
notification_room_manager = NotificationRoomManager()
