"""Async engine + session factory construction.

Engines are built explicitly at startup and handed to the owning store;
nothing here connects at import time.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the pooled engine.

    pool_size is the persistent floor kept open between bursts;
    max_overflow tops the pool up to DB_POOL_MAX_CONNECTIONS.
    """
    pool_size = min(settings.DB_POOL_MIN_IDLE, settings.DB_POOL_MAX_CONNECTIONS)
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=pool_size,
        max_overflow=settings.DB_POOL_MAX_CONNECTIONS - pool_size,
        pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
