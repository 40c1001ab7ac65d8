"""Cache Protocol — key/value side-cache with per-entry TTL.

A miss is `None`; a transport failure raises CacheUnavailableError.
Callers must not conflate the two.
"""

from typing import Protocol


class CacheProtocol(Protocol):
    async def get(self, key: str) -> bytes | None: ...

    async def put(self, key: str, value: bytes, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is not an error."""
        ...

    async def incr(self, key: str) -> int:
        """Atomically increment an integer counter and return the new value."""
        ...

    async def ping(self) -> None: ...

    async def close(self) -> None: ...
