"""
Shared fixtures: a temporary SQLite database, an in-memory Redis and an
httpx client bound to a freshly built application.
"""
from dataclasses import replace

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis, FakeServer
from httpx import ASGITransport, AsyncClient

from storefront.auth.hashing import PasswordHasher
from storefront.cache.redis_cache import CacheService
from storefront.config import Settings
from storefront.database.store import Database
from storefront.main import create_app
from storefront.seeds import seed_users
from storefront.tests.helpers import login, register


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}",
        redis_url="redis://localhost:6379/15",
        jwt_secret="test-secret-with-enough-entropy-0123456789",
        log_level="WARNING",
        log_file=None,
        rate_limit_enabled=False,
        bcrypt_rounds=4,
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def redis_server():
    return FakeServer()


@pytest_asyncio.fixture
async def cache(redis_server):
    service = CacheService(FakeAsyncRedis(server=redis_server, decode_responses=True))
    yield service
    await service.close()


@pytest.fixture
def make_app(settings, database, cache):
    """Factory building an app over the shared handles, with setting overrides."""

    def _make_app(**overrides):
        return create_app(replace(settings, **overrides), database=database, cache=cache)

    return _make_app


@pytest.fixture
def app(make_app):
    return make_app()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(base_url="http://test", transport=transport) as ac:
        yield ac


@pytest_asyncio.fixture
async def seeded_users(database):
    return await seed_users(database, PasswordHasher(rounds=4))



@pytest_asyncio.fixture
async def user_token(client):
    response = await register(client, "shopper@example.com")
    assert response.status_code == 201
    return response.json()["token"]


@pytest_asyncio.fixture
async def admin_token(client, seeded_users):
    response = await login(client, "admin@ecommerce.com", "Admin123!")
    assert response.status_code == 200
    return response.json()["token"]
