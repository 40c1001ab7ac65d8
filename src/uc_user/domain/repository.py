# src/uc_user/domain/repository.py
"""Record store Protocol — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the PostgreSQL implementation.

Failures are raised, never returned:
  UserNotFoundError      — no row for the id
  UserConflictError      — unique violation on username/email
  InvalidUserInputError  — the store rejected the values
  StoreUnavailableError  — connection/transport failure
"""

from typing import Protocol

from src.uc_user.domain.models import User


class UserStoreProtocol(Protocol):
    async def get_user(self, user_id: int) -> User: ...

    async def list_users(self, limit: int, offset: int) -> list[User]: ...

    async def count_users(self) -> int: ...

    async def create_user(self, username: str, email: str) -> User: ...

    async def update_user(self, user_id: int, username: str, email: str) -> User: ...

    async def delete_user(self, user_id: int) -> None: ...

    async def ping(self) -> None: ...

    async def close(self) -> None: ...
