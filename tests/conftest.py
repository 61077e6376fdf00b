"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite; StaticPool keeps every session on the
  same connection so they all see the same in-memory database.
- ``get_db`` is overridden with the test session factory.
- Tables are created before and dropped after every test.
- Redis is disabled (``cache._redis = None``); the cache degrades to
  no-op reads and writes.
- Outbound HTTP is replaced per test through ``mock_http``, which swaps
  ``get_http_client`` for a client on ``httpx.MockTransport``.
"""
import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blogapi.cache import cache
from blogapi.clients import get_http_client
from blogapi.database import Base, get_db
from blogapi.main import app
from blogapi.middleware import install_query_counter

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory() -> async_sessionmaker:
    return async_session_test


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def make_user(async_client: AsyncClient):
    """
    Factory: register a password user, log in, and return
    ``(user_id, auth_headers)``.
    """

    async def _make(name: str, password: str = "s3cret-pass") -> tuple[str, dict]:
        resp = await async_client.post("/api/user/register", json={
            "isPassword": True,
            "name": name,
            "password": password,
        })
        assert resp.status_code == 200, resp.text
        resp = await async_client.post("/api/user/login", json={
            "isPassword": True,
            "name": name,
            "password": password,
        })
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return body["data"]["id"], {"Authorization": f"Bearer {body['token']}"}

    return _make


@pytest.fixture
def mock_http():
    """
    Route the app's outbound HTTP through *handler*:

        mock_http(lambda request: httpx.Response(200, json={...}))
    """

    def _install(handler):
        async def _client():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                yield client

        app.dependency_overrides[get_http_client] = _client

    yield _install
    app.dependency_overrides.pop(get_http_client, None)
