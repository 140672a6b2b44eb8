"""
Cross-process notification fan-out.

Sweep jobs run inside Celery workers, which hold no WebSocket
connections. Workers publish room messages on a Redis channel and the API
process relays them into its local rooms.
"""

import asyncio
from typing import Any, Dict, Optional

from gatepass.core.config import settings
from gatepass.core.logging_config import logger
from gatepass.core.redis_client import RedisClient, redis_client
from gatepass.services.notification_rooms import NotificationRoomManager, notification_room_manager


class RedisNotificationPublisher:
    """Notification publisher used outside the API process"""

    def __init__(self, client: Optional[RedisClient] = None, channel: Optional[str] = None):
        self.client = client or redis_client
        self.channel = channel or settings.NOTIFICATION_CHANNEL

    async def publish(self, room: str, payload: Dict[str, Any]) -> int:
        try:
            return await self.client.publish(self.channel, {"room": room, "payload": payload})
        except Exception as e:
            # The notification is already persisted; the user sees it on next fetch
            logger.error(f"Failed to publish notification to {room}: {e}")
            return 0


class NotificationRelay:
    """Background task in the API process: Redis channel -> WebSocket rooms"""

    def __init__(
        self,
        manager: Optional[NotificationRoomManager] = None,
        client: Optional[RedisClient] = None,
        channel: Optional[str] = None,
        retry_delay: float = 5.0,
    ):
        self.manager = manager or notification_room_manager
        self.client = client or redis_client
        self.channel = channel or settings.NOTIFICATION_CHANNEL
        self.retry_delay = retry_delay
        self._task: Optional[asyncio.Task] = None

    async def handle_message(self, message: Dict[str, Any]) -> int:
        room = message.get("room")
        payload = message.get("payload")
        if not room or not isinstance(payload, dict):
            logger.warning(f"Ignoring relay message without room/payload: {message}")
            return 0
        return await self.manager.publish(room, payload)

    async def _run(self):
        while True:
            try:
                async for message in self.client.listen(self.channel):
                    await self.handle_message(message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Notification relay error, retrying in {self.retry_delay}s: {e}")
                await asyncio.sleep(self.retry_delay)

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
            logger.info(f"Notification relay listening on {self.channel}")

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Notification relay stopped")


notification_relay = NotificationRelay()
