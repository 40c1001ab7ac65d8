"""InMemoryCache — process-local CacheProtocol backend.

Used for local development (CACHE_BACKEND=memory) and as a test double.
Expiry is checked lazily on access against a monotonic clock. Every
operation runs without awaiting, so each one is atomic on the event loop.
"""

import time
from collections.abc import Callable

from src.uc_common.errors import CacheUnavailableError


class InMemoryCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[bytes, float | None]] = {}
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise CacheUnavailableError("In-memory cache is closed")

    def _live_value(self, key: str) -> bytes | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def get(self, key: str) -> bytes | None:
        self._check_open()
        return self._live_value(key)

    async def put(self, key: str, value: bytes, ttl_seconds: int) -> None:
        self._check_open()
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._entries[key] = (bytes(value), self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._check_open()
        self._entries.pop(key, None)

    async def incr(self, key: str) -> int:
        self._check_open()
        current = self._live_value(key)
        try:
            new_value = (int(current) if current is not None else 0) + 1
        except ValueError as exc:
            # Redis answers INCR on a non-integer value with an error reply.
            raise CacheUnavailableError(f"Value at {key} is not an integer") from exc
        # Counters never expire, matching Redis INCR on a fresh key.
        self._entries[key] = (str(new_value).encode(), None)
        return new_value

    async def ping(self) -> None:
        self._check_open()

    async def close(self) -> None:
        self._entries.clear()
        self._closed = True

    def __len__(self) -> int:
        return sum(1 for key in list(self._entries) if self._live_value(key) is not None)
