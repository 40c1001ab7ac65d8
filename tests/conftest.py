"""Shared test fixtures."""

import pytest
from fakes import FakeUserStore, SpyCache
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.uc_user.application.cached_repository import CachedUserRepository


@pytest.fixture
def store() -> FakeUserStore:
    return FakeUserStore()


@pytest.fixture
def cache() -> SpyCache:
    return SpyCache()


@pytest.fixture
def repo(store: FakeUserStore, cache: SpyCache) -> CachedUserRepository:
    return CachedUserRepository(store=store, cache=cache, cache_ttl_seconds=60)


@pytest.fixture
async def client(repo: CachedUserRepository) -> AsyncClient:
    """Async HTTP client wired to fake backends (lifespan is not run)."""
    app.state.user_repository = repo
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
