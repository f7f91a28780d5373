"""
Test infrastructure for the Conduit API.

Strategy
--------
- SQLite in-memory via aiosqlite, so no Postgres instance is needed.
- StaticPool makes every async task share the one in-memory connection
  (an SQLite in-memory database is connection-scoped).
- The app's get_db dependency is overridden with the test session factory,
  keeping the same commit-once / rollback-on-error unit of work.
- Tables are created before and dropped after each test.
- Redis is disabled by setting cache._redis = None; the CacheManager treats
  that as a permanent miss, so tests always exercise the database path.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from conduit.database import Base, get_db
from conduit.main import app
from conduit.cache import cache
from conduit.middleware import install_query_counter

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

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


# ---------------------------------------------------------------------------
# Dependency override
# ---------------------------------------------------------------------------

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
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live AsyncSession for service-level tests (never committed)."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------

DEFAULT_PASSWORD = "secret123"


async def register(client: AsyncClient, email: str, first: str = "Test", last: str = "User") -> dict:
    resp = await client.post("/api/v1/authentication/sign-up", json={
        "email": email,
        "password": DEFAULT_PASSWORD,
        "first_name": first,
        "last_name": last,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


async def sign_in(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    resp = await client.post("/api/v1/authentication/sign-in", json={
        "email": email,
        "password": password,
    })
    assert resp.status_code == 200, resp.text
    return resp.json()


def bearer(tokens: dict) -> dict:
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture
async def make_user(async_client: AsyncClient):
    """
    Factory fixture: sign up and sign in a user, returning a dict with the
    user's ``id``, ``tokens`` and ready-made auth ``headers``.
    """
    async def _make(email: str, first: str = "Test", last: str = "User") -> dict:
        user = await register(async_client, email, first, last)
        tokens = await sign_in(async_client, email)
        return {"id": user["id"], "email": user["email"], "tokens": tokens, "headers": bearer(tokens)}

    return _make
