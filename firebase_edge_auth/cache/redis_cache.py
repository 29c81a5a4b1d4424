"""
Redis adapter for the cache interface.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis

from ..shared.logging import get_logger
from .base import Cache


class RedisCache(Cache):
    """Redis-backed cache shared between edge instances.

    Failures are logged and reported as misses; a broken cache only costs an
    extra round-trip to the provider.
    """

    def __init__(self, redis_url: str, prefix: str = "firebase-auth:"):
        self.redis_url = redis_url
        self.prefix = prefix
        self.logger = get_logger("firebase_auth.cache.redis")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            client = await self._get_redis()
            cached = await client.get(self._make_key(key))
        except redis.RedisError as e:
            self.logger.error("Cache get error", key=key, error=str(e))
            return None

        if cached is None:
            return None

        try:
            return json.loads(cached)
        except ValueError:
            self.logger.warning("Discarding undecodable cache entry", key=key)
            return None

    async def put(self, key: str, value: Any, expiration_ttl: Optional[int] = None) -> None:
        payload = json.dumps(value)
        try:
            client = await self._get_redis()
            if expiration_ttl:
                await client.setex(self._make_key(key), expiration_ttl, payload)
            else:
                await client.set(self._make_key(key), payload)
            self.logger.debug("Cached value", key=key, ttl=expiration_ttl)
        except redis.RedisError as e:
            self.logger.error("Cache set error", key=key, error=str(e))

    async def delete(self, key: str) -> None:
        try:
            client = await self._get_redis()
            await client.delete(self._make_key(key))
        except redis.RedisError as e:
            self.logger.error("Cache delete error", key=key, error=str(e))

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
