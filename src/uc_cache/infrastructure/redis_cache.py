"""RedisCache — concrete implementation of CacheProtocol over redis-py asyncio.

Every RedisError (connection refused, socket timeout, server error) is mapped
to CacheUnavailableError; a missing key is returned as None.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.uc_common.errors import CacheUnavailableError

logger = logging.getLogger(__name__)


class RedisCache:
    def __init__(self, client: aioredis.Redis) -> None:
        self._redis = client

    async def get(self, key: str) -> bytes | None:
        try:
            return await self._redis.get(key)
        except RedisError as exc:
            raise CacheUnavailableError(f"Failed to get cache key {key}: {exc}") from exc

    async def put(self, key: str, value: bytes, ttl_seconds: int) -> None:
        try:
            await self._redis.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise CacheUnavailableError(f"Failed to set cache key {key}: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            raise CacheUnavailableError(f"Failed to delete cache key {key}: {exc}") from exc

    async def incr(self, key: str) -> int:
        try:
            return int(await self._redis.incr(key))
        except RedisError as exc:
            raise CacheUnavailableError(f"Failed to increment counter {key}: {exc}") from exc

    async def ping(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as exc:
            raise CacheUnavailableError(f"Redis ping failed: {exc}") from exc

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis cache connections closed")
