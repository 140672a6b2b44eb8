import redis.asyncio as aioredis
from redis.asyncio import Redis
from typing import Optional, AsyncIterator, Dict, Any
import json

from gatepass.core.config import settings
from gatepass.core.logging_config import logger


class RedisClient:
    """Redis client for cross-process notification fan-out"""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.redis: Optional[Redis] = None

    async def connect(self):
        """Connect to Redis"""
        if self.redis is not None:
            return
        try:
            self.redis = aioredis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True
            )
            await self.redis.ping()
            logger.info("Redis connected successfully")
        except Exception as e:
            logger.error(f"Redis connection error: {e}")
            self.redis = None
            raise

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
        logger.info("Redis disconnected")

    async def publish(self, channel: str, message: Dict[str, Any]) -> int:
        """Publish a JSON message; returns the number of subscribers that got it"""
        await self.connect()
        return await self.redis.publish(channel, json.dumps(message, default=str))

    async def listen(self, channel: str) -> AsyncIterator[Dict[str, Any]]:
        """Yield decoded JSON messages published on a channel"""
        await self.connect()
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            async for raw in pubsub.listen():
                if raw.get("type") != "message":
                    continue
                try:
                    yield json.loads(raw["data"])
                except (TypeError, json.JSONDecodeError):
                    logger.warning(f"Dropping malformed message on {channel}")
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()


# Create Redis client instance
redis_client = RedisClient()
