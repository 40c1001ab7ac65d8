"""CachedUserRepository — the data-access coordinator.

Composes a record store (authoritative) with a side-cache (lossy, TTL-bounded):

  Read:   cache-aside. Cache hit → return. Miss or cache failure → store,
          then best-effort repopulate. NotFound is never cached.
  List:   always straight from the store; list pages are not cached.
  Write:  store first; on success delete (never refresh) the cache entry.
  Delete: store first; on success delete the cache entry.

Cache failures are logged and counted but never fail a CRUD call: the store
is the source of truth. A failed post-write invalidation leaves a staleness
window bounded by the entry TTL. Store failures always propagate.

Holds no per-record state and takes no locks; safe to share across tasks.
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import asdict, dataclass
from typing import TypeVar

from src.uc_cache.domain.protocol import CacheProtocol
from src.uc_common.errors import (
    AppError,
    CacheUnavailableError,
    InternalError,
    StoreTimeoutError,
    StoreUnavailableError,
)
from src.uc_user.domain.codec import decode_user, encode_user, user_cache_key
from src.uc_user.domain.models import User
from src.uc_user.domain.repository import UserStoreProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")

COUNTER_KEY_PREFIX = "stats:"


@dataclass
class DataAccessStats:
    """In-process counters so operators can tell cache trouble from store trouble."""

    cache_hits: int = 0
    cache_misses: int = 0
    cache_errors: int = 0
    invalidation_failures: int = 0
    store_errors: int = 0

    def snapshot(self) -> dict[str, int]:
        return asdict(self)


class CachedUserRepository:
    def __init__(
        self,
        store: UserStoreProtocol,
        cache: CacheProtocol,
        cache_ttl_seconds: int = 300,
        store_timeout: float = 5.0,
        cache_timeout: float = 1.0,
        invalidation_attempts: int = 1,
    ) -> None:
        if cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        self._store = store
        self._cache = cache
        self._cache_ttl = cache_ttl_seconds
        self._store_timeout = store_timeout
        self._cache_timeout = cache_timeout
        self._invalidation_attempts = max(1, invalidation_attempts)
        self.stats = DataAccessStats()

    # ------------------------------------------------------------------
    # Backend call wrappers
    # ------------------------------------------------------------------

    async def _store_call(
        self, operation: str, user_id: int | None, call: Awaitable[T]
    ) -> T:
        try:
            async with asyncio.timeout(self._store_timeout):
                return await call
        except TimeoutError as exc:
            self.stats.store_errors += 1
            logger.error("Store %s timed out (user_id=%s)", operation, user_id)
            raise StoreTimeoutError().with_context(operation, user_id) from exc
        except StoreUnavailableError as exc:
            self.stats.store_errors += 1
            raise exc.with_context(operation, user_id)
        except AppError as exc:
            raise exc.with_context(operation, user_id)
        except Exception as exc:
            self.stats.store_errors += 1
            logger.exception("Store %s failed unexpectedly (user_id=%s)", operation, user_id)
            raise InternalError(f"Record store {operation} failed").with_context(
                operation, user_id
            ) from exc

    async def _cache_call(self, call: Awaitable[T]) -> T:
        """Run a cache call under the cache deadline; timeouts become CacheUnavailableError."""
        try:
            async with asyncio.timeout(self._cache_timeout):
                return await call
        except TimeoutError as exc:
            raise CacheUnavailableError("Cache request timed out") from exc

    async def _cache_lookup(self, user_id: int, key: str) -> User | None:
        try:
            payload = await self._cache_call(self._cache.get(key))
        except CacheUnavailableError as exc:
            self.stats.cache_errors += 1
            logger.warning("Cache read failed for %s, falling back to store: %s", key, exc)
            return None
        if payload is None:
            self.stats.cache_misses += 1
            logger.debug("Cache miss for %s", key)
            return None
        try:
            user = decode_user(payload)
        except ValueError as exc:
            self.stats.cache_misses += 1
            logger.warning("Discarding undecodable cache entry %s: %s", key, exc)
            return None
        if user.id != user_id:
            self.stats.cache_misses += 1
            logger.warning("Cache entry %s holds user %s, ignoring", key, user.id)
            return None
        self.stats.cache_hits += 1
        logger.debug("Cache hit for %s", key)
        return user

    async def _cache_fill(self, user: User) -> None:
        key = user_cache_key(user.id)
        try:
            await self._cache_call(self._cache.put(key, encode_user(user), self._cache_ttl))
        except CacheUnavailableError as exc:
            self.stats.cache_errors += 1
            logger.warning("Cache populate failed for %s: %s", key, exc)

    async def _invalidate(self, operation: str, user_id: int) -> None:
        key = user_cache_key(user_id)
        for attempt in range(1, self._invalidation_attempts + 1):
            try:
                await self._cache_call(self._cache.delete(key))
                return
            except CacheUnavailableError as exc:
                self.stats.cache_errors += 1
                logger.warning(
                    "Cache invalidation after %s failed for %s (attempt %d/%d): %s",
                    operation,
                    key,
                    attempt,
                    self._invalidation_attempts,
                    exc,
                )
        self.stats.invalidation_failures += 1
        logger.error(
            "Cache entry %s may be stale for up to %ss after %s",
            key,
            self._cache_ttl,
            operation,
        )

    # ------------------------------------------------------------------
    # Repository contract
    # ------------------------------------------------------------------

    async def get_user(self, user_id: int) -> User:
        key = user_cache_key(user_id)
        cached = await self._cache_lookup(user_id, key)
        if cached is not None:
            return cached
        user = await self._store_call("get_user", user_id, self._store.get_user(user_id))
        await self._cache_fill(user)
        return user

    async def list_users(self, limit: int, offset: int) -> list[User]:
        return await self._store_call(
            "list_users", None, self._store.list_users(limit, offset)
        )

    async def count_users(self) -> int:
        return await self._store_call("count_users", None, self._store.count_users())

    async def create_user(self, username: str, email: str) -> User:
        user = await self._store_call(
            "create_user", None, self._store.create_user(username, email)
        )
        await self._invalidate("create_user", user.id)
        return user

    async def update_user(self, user_id: int, username: str, email: str) -> User:
        user = await self._store_call(
            "update_user", user_id, self._store.update_user(user_id, username, email)
        )
        await self._invalidate("update_user", user_id)
        return user

    async def delete_user(self, user_id: int) -> None:
        await self._store_call("delete_user", user_id, self._store.delete_user(user_id))
        await self._invalidate("delete_user", user_id)

    async def incr_counter(self, name: str) -> int | None:
        """Bump an ancillary counter in the cache; None when the cache is down."""
        try:
            return await self._cache_call(self._cache.incr(f"{COUNTER_KEY_PREFIX}{name}"))
        except CacheUnavailableError as exc:
            self.stats.cache_errors += 1
            logger.warning("Counter %s not incremented: %s", name, exc)
            return None

    # ------------------------------------------------------------------
    # Health / lifecycle
    # ------------------------------------------------------------------

    async def check_health(self) -> dict[str, str]:
        status = {"store": "ok", "cache": "ok"}
        try:
            await self._store_call("ping", None, self._store.ping())
        except (StoreUnavailableError, InternalError):
            status["store"] = "unavailable"
        try:
            await self._cache_call(self._cache.ping())
        except CacheUnavailableError:
            status["cache"] = "unavailable"
        return status

    async def close(self) -> None:
        """Release both backends. A cache close failure does not skip the store."""
        try:
            await self._cache.close()
        except Exception:
            logger.exception("Error closing cache connections")
        await self._store.close()
