"""
Quote Gateway - Redis Client
"""
from typing import Optional

import redis.asyncio as redis
from loguru import logger


class RedisClient:
    """Async Redis client wrapper."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._client: redis.Redis | None = None

    async def initialize(self):
        """Initialize Redis connection."""
        try:
            self._client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            # Test connection
            await self._client.ping()
            safe_url = self.redis_url.split("@")[-1] if "@" in self.redis_url else self.redis_url
            logger.info(f"✅ Redis connected: {safe_url}")
        except Exception as e:
            logger.error(f"❌ Redis connection failed: {e}")
            raise

    async def close(self):
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    @property
    def client(self) -> redis.Redis:
        """Get Redis client instance."""
        if not self._client:
            raise RuntimeError("Redis client not initialized. Call initialize() first.")
        return self._client

    # =========================
    # Hash Methods
    # =========================
    async def hget(self, key: str, field: str) -> Optional[str]:
        return await self.client.hget(key, field)

    async def hset(self, key: str, field: str, value: str) -> None:
        await self.client.hset(key, field, value)

    async def hdel(self, key: str, field: str) -> None:
        await self.client.hdel(key, field)

    async def hgetall(self, key: str) -> dict[str, str]:
        return await self.client.hgetall(key)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def hlen(self, key: str) -> int:
        return await self.client.hlen(key)
