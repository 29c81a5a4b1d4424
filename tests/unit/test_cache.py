"""
Unit tests for cache backends.
"""

import json

import pytest
import redis.asyncio as redis
from unittest.mock import AsyncMock, patch

from firebase_edge_auth.cache.memory import InMemoryCache
from firebase_edge_auth.cache.redis_cache import RedisCache


class TestInMemoryCache:
    """Test cases for InMemoryCache."""

    @pytest.mark.asyncio
    async def test_put_and_get(self):
        cache = InMemoryCache()

        await cache.put("google-oauth", "ya29.token", expiration_ttl=3600)

        assert await cache.get("google-oauth") == "ya29.token"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        assert await InMemoryCache().get("missing") is None

    @pytest.mark.asyncio
    async def test_entry_expires(self):
        """Entries disappear once their TTL has elapsed."""
        cache = InMemoryCache()

        with patch("firebase_edge_auth.cache.memory.time.monotonic", return_value=1000.0):
            await cache.put("key", {"a": 1}, expiration_ttl=10)
        with patch("firebase_edge_auth.cache.memory.time.monotonic", return_value=1009.0):
            assert await cache.get("key") == {"a": 1}
        with patch("firebase_edge_auth.cache.memory.time.monotonic", return_value=1010.0):
            assert await cache.get("key") is None

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_entry_without_ttl(self):
        cache = InMemoryCache()

        await cache.put("key", "value")

        assert await cache.get("key") == "value"

    @pytest.mark.asyncio
    async def test_delete_and_clear(self):
        cache = InMemoryCache()
        await cache.put("a", 1)
        await cache.put("b", 2)

        await cache.delete("a")
        await cache.delete("never-set")
        assert await cache.get("a") is None

        cache.clear()
        assert len(cache) == 0


class TestRedisCache:
    """Test cases for RedisCache."""

    @pytest.fixture
    def mock_redis(self):
        """Mock Redis client."""
        client = AsyncMock()
        client.get.return_value = None
        return client

    @pytest.fixture
    def redis_cache(self, mock_redis):
        """RedisCache wired to the mock client."""
        cache = RedisCache("redis://localhost:6379/0")
        cache._redis = mock_redis
        return cache

    @pytest.mark.asyncio
    async def test_put_with_ttl(self, redis_cache, mock_redis):
        await redis_cache.put("google-oauth", "ya29.token", expiration_ttl=3300)

        mock_redis.setex.assert_awaited_once_with("firebase-auth:google-oauth", 3300, '"ya29.token"')

    @pytest.mark.asyncio
    async def test_put_without_ttl(self, redis_cache, mock_redis):
        await redis_cache.put("key", {"a": 1})

        mock_redis.set.assert_awaited_once_with("firebase-auth:key", json.dumps({"a": 1}))

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, redis_cache, mock_redis):
        mock_redis.get.return_value = json.dumps({"keys": {"kid": "cert"}})

        result = await redis_cache.get("public-keys")

        assert result == {"keys": {"kid": "cert"}}
        mock_redis.get.assert_awaited_once_with("firebase-auth:public-keys")

    @pytest.mark.asyncio
    async def test_get_miss(self, redis_cache):
        assert await redis_cache.get("missing") is None

    @pytest.mark.asyncio
    async def test_get_error_is_a_miss(self, redis_cache, mock_redis):
        """Redis failures never surface to callers."""
        mock_redis.get.side_effect = redis.ConnectionError("down")

        assert await redis_cache.get("key") is None

    @pytest.mark.asyncio
    async def test_put_error_is_swallowed(self, redis_cache, mock_redis):
        mock_redis.setex.side_effect = redis.ConnectionError("down")

        await redis_cache.put("key", "value", expiration_ttl=10)

    @pytest.mark.asyncio
    async def test_get_undecodable_entry(self, redis_cache, mock_redis):
        mock_redis.get.return_value = "{not json"

        assert await redis_cache.get("key") is None

    @pytest.mark.asyncio
    async def test_delete(self, redis_cache, mock_redis):
        await redis_cache.delete("key")

        mock_redis.delete.assert_awaited_once_with("firebase-auth:key")

    @pytest.mark.asyncio
    async def test_close(self, redis_cache, mock_redis):
        await redis_cache.close()

        mock_redis.aclose.assert_awaited_once()
        assert redis_cache._redis is None

    @pytest.mark.asyncio
    async def test_lazy_connection(self):
        """The client is created from the URL on first use."""
        cache = RedisCache("redis://cache:6379/1")

        with patch("firebase_edge_auth.cache.redis_cache.redis.from_url") as mock_from_url:
            mock_from_url.return_value = AsyncMock()
            client = await cache._get_redis()

        assert client is mock_from_url.return_value
        assert mock_from_url.call_args[0][0] == "redis://cache:6379/1"
