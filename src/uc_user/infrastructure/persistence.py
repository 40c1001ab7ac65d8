"""PostgresUserStore — concrete implementation of UserStoreProtocol.

All queries use raw text() SQL (no ORM). Each mutation is a single
INSERT/UPDATE/DELETE ... RETURNING statement inside its own transaction, so
it is atomic at the row level. Timestamps come from the database clock
(DEFAULT NOW() on insert, NOW() + trigger on update), never from the caller.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.uc_common.database import build_session_factory
from src.uc_common.datetime_utils import ensure_utc
from src.uc_common.errors import (
    EmailExistsError,
    InvalidUserInputError,
    StoreTimeoutError,
    StoreUnavailableError,
    UserConflictError,
    UsernameExistsError,
    UserNotFoundError,
)
from src.uc_user.domain.models import User

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_USER_COLUMNS = "id, username, email, created_at, updated_at"

_GET_USER_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE id = :user_id
""")

_LIST_USERS_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    ORDER BY id ASC
    LIMIT :limit OFFSET :offset
""")

_COUNT_USERS_SQL = text("SELECT COUNT(*) FROM users")

_INSERT_USER_SQL = text(f"""
    INSERT INTO users (username, email)
    VALUES (:username, :email)
    RETURNING {_USER_COLUMNS}
""")

_UPDATE_USER_SQL = text(f"""
    UPDATE users
    SET username = :username, email = :email, updated_at = NOW()
    WHERE id = :user_id
    RETURNING {_USER_COLUMNS}
""")

_DELETE_USER_SQL = text("""
    DELETE FROM users
    WHERE id = :user_id
    RETURNING id
""")

_PING_SQL = text("SELECT 1")

# PostgreSQL SQLSTATE codes
_UNIQUE_VIOLATION = "23505"
_INVALID_INPUT_PREFIXES = ("22", "23")  # data exceptions, other integrity violations

# ---------------------------------------------------------------------------
# Row mappers / error mapping
# ---------------------------------------------------------------------------


def _row_to_user(row: object) -> User:
    return User(
        id=row.id,  # type: ignore[attr-defined]
        username=row.username,  # type: ignore[attr-defined]
        email=row.email,  # type: ignore[attr-defined]
        created_at=ensure_utc(row.created_at),  # type: ignore[attr-defined]
        updated_at=ensure_utc(row.updated_at),  # type: ignore[attr-defined]
    )


def _sqlstate(exc: sa_exc.DBAPIError) -> str | None:
    """Dig the SQLSTATE out of the DBAPI adapter (or the asyncpg error behind it)."""
    for candidate in (exc.orig, getattr(exc.orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def _rejected_bind(exc: sa_exc.DBAPIError) -> bool:
    """asyncpg refuses out-of-range binds (e.g. int8 overflow) with a ValueError subclass."""
    return any(
        isinstance(candidate, ValueError)
        for candidate in (exc.orig, getattr(exc.orig, "__cause__", None))
    )


def _conflict_from(exc: sa_exc.IntegrityError) -> UserConflictError:
    cause = getattr(exc.orig, "__cause__", None)
    constraint = getattr(cause, "constraint_name", None) or str(exc.orig)
    if "username" in constraint:
        return UsernameExistsError()
    if "email" in constraint:
        return EmailExistsError()
    return UserConflictError()


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Map SQLAlchemy/driver failures onto the store's error taxonomy."""
    try:
        yield
    except sa_exc.IntegrityError as exc:
        if _sqlstate(exc) == _UNIQUE_VIOLATION:
            raise _conflict_from(exc) from exc
        raise InvalidUserInputError(str(exc.orig)) from exc
    except sa_exc.DataError as exc:
        raise InvalidUserInputError(str(exc.orig)) from exc
    except sa_exc.TimeoutError as exc:
        # Pool checkout timed out: every connection is busy.
        logger.error("Store %s timed out waiting for a connection", operation)
        raise StoreTimeoutError(f"Timed out waiting for a database connection: {exc}") from exc
    except sa_exc.InterfaceError as exc:
        if _rejected_bind(exc):
            raise InvalidUserInputError(str(exc.orig)) from exc
        logger.error("Store %s failed: %s", operation, exc)
        raise StoreUnavailableError(f"Database unavailable: {exc}") from exc
    except (sa_exc.OperationalError, OSError) as exc:
        logger.error("Store %s failed: %s", operation, exc)
        raise StoreUnavailableError(f"Database unavailable: {exc}") from exc
    except sa_exc.DBAPIError as exc:
        if exc.connection_invalidated:
            logger.error("Store %s lost its connection: %s", operation, exc)
            raise StoreUnavailableError(f"Database connection lost: {exc}") from exc
        state = _sqlstate(exc)
        if state is not None and state.startswith(_INVALID_INPUT_PREFIXES):
            raise InvalidUserInputError(str(exc.orig)) from exc
        raise


def _validate(username: str, email: str) -> None:
    if not username or not username.strip():
        raise InvalidUserInputError("username must not be empty")
    if not email or not email.strip():
        raise InvalidUserInputError("email must not be empty")
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain:
        raise InvalidUserInputError(f"malformed email address: {email}")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class PostgresUserStore:
    """Owns the pooled engine; close() disposes every pooled connection."""

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory or build_session_factory(engine)

    async def get_user(self, user_id: int) -> User:
        with _translate_errors("get_user"):
            async with self._session_factory() as db:
                result = await db.execute(_GET_USER_SQL, {"user_id": user_id})
                row = result.fetchone()
        if row is None:
            raise UserNotFoundError(user_id)
        return _row_to_user(row)

    async def list_users(self, limit: int, offset: int) -> list[User]:
        if limit <= 0:
            return []
        with _translate_errors("list_users"):
            async with self._session_factory() as db:
                result = await db.execute(
                    _LIST_USERS_SQL, {"limit": limit, "offset": max(offset, 0)}
                )
                rows = result.fetchall()
        return [_row_to_user(row) for row in rows]

    async def count_users(self) -> int:
        with _translate_errors("count_users"):
            async with self._session_factory() as db:
                result = await db.execute(_COUNT_USERS_SQL)
                return int(result.scalar_one())

    async def create_user(self, username: str, email: str) -> User:
        _validate(username, email)
        with _translate_errors("create_user"):
            async with self._session_factory.begin() as db:
                result = await db.execute(
                    _INSERT_USER_SQL, {"username": username, "email": email}
                )
                row = result.fetchone()
        return _row_to_user(row)

    async def update_user(self, user_id: int, username: str, email: str) -> User:
        _validate(username, email)
        with _translate_errors("update_user"):
            async with self._session_factory.begin() as db:
                result = await db.execute(
                    _UPDATE_USER_SQL,
                    {"user_id": user_id, "username": username, "email": email},
                )
                row = result.fetchone()
        if row is None:
            raise UserNotFoundError(user_id)
        return _row_to_user(row)

    async def delete_user(self, user_id: int) -> None:
        with _translate_errors("delete_user"):
            async with self._session_factory.begin() as db:
                result = await db.execute(_DELETE_USER_SQL, {"user_id": user_id})
                row = result.fetchone()
        if row is None:
            raise UserNotFoundError(user_id)

    async def ping(self) -> None:
        with _translate_errors("ping"):
            async with self._engine.connect() as conn:
                await conn.execute(_PING_SQL)

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("Database connection pool disposed")
