"""Redis connection pool factory — used by the user cache and ancillary counters.

Values are stored as raw bytes (decode_responses=False): the cache layer
treats payloads as opaque and leaves decoding to the caller.
"""

import redis.asyncio as aioredis

from config.settings import Settings


def build_redis(settings: Settings) -> aioredis.Redis:
    """Create a pooled client. Connections are opened lazily on first command."""
    return aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=False,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        socket_connect_timeout=settings.CACHE_TIMEOUT_SECONDS,
        socket_timeout=settings.CACHE_TIMEOUT_SECONDS,
    )
