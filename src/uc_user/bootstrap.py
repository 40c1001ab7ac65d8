"""Startup wiring: build the store + cache backends and hand them to the coordinator.

The store must be reachable at startup; the cache need not be, since every
repository operation already tolerates an unavailable cache.
"""

import logging

from config.settings import Settings
from src.uc_cache.domain.protocol import CacheProtocol
from src.uc_cache.infrastructure.memory_cache import InMemoryCache
from src.uc_cache.infrastructure.redis_cache import RedisCache
from src.uc_common.database import build_engine
from src.uc_common.errors import CacheUnavailableError
from src.uc_common.redis_client import build_redis
from src.uc_user.application.cached_repository import CachedUserRepository
from src.uc_user.infrastructure.persistence import PostgresUserStore

logger = logging.getLogger(__name__)


def build_cache(settings: Settings) -> CacheProtocol:
    backend = settings.CACHE_BACKEND.lower()
    if backend == "redis":
        return RedisCache(build_redis(settings))
    if backend == "memory":
        return InMemoryCache()
    raise ValueError(f"Unknown CACHE_BACKEND: {settings.CACHE_BACKEND!r}")


async def open_user_repository(settings: Settings) -> CachedUserRepository:
    """Connect both backends. Raises StoreUnavailableError if the database is down."""
    store = PostgresUserStore(build_engine(settings))
    cache = build_cache(settings)
    try:
        await store.ping()
    except Exception:
        await store.close()
        await cache.close()
        raise
    logger.info("Successfully connected to PostgreSQL database")

    try:
        await cache.ping()
        logger.info("Successfully connected to %s cache", settings.CACHE_BACKEND)
    except CacheUnavailableError as exc:
        logger.warning("Cache unreachable at startup, serving from store only: %s", exc)

    return CachedUserRepository(
        store=store,
        cache=cache,
        cache_ttl_seconds=settings.USER_CACHE_TTL_SECONDS,
        store_timeout=settings.STORE_TIMEOUT_SECONDS,
        cache_timeout=settings.CACHE_TIMEOUT_SECONDS,
        invalidation_attempts=settings.CACHE_INVALIDATION_ATTEMPTS,
    )
