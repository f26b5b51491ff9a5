"""
Test infrastructure for the Forum API.

Strategy
--------
- SQLite in-memory via aiosqlite, shared through a StaticPool so every
  session sees the same connection and therefore the same database.
- ``PRAGMA foreign_keys=ON`` is issued on connect; SQLite ignores the
  ON DELETE CASCADE clauses otherwise.
- The ``get_gateway`` dependency is overridden with a Gateway bound to the
  test engine.  Service-level tests receive the same gateway through the
  ``gateway`` fixture, so HTTP and direct calls share one code path.
- Tables are created before and dropped after each test.
- Redis is disabled by setting ``cache._redis = None``; the cache then
  misses on every read and skips every write.
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from forum.cache import cache
from forum.database import Base, Gateway, get_gateway
from forum.main import app
from forum.middleware import install_query_counter
from forum.models import Role
from forum.repositories import RatingRepository, UserRepository
from forum.security import create_access_token, hash_password
from forum.services.access import Actor
from forum.services.rating import compute_rating

# ---------------------------------------------------------------------------
# Test database engine
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "password123"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine_test.sync_engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)

test_gateway = Gateway(async_session_test)

app.dependency_overrides[get_gateway] = lambda: test_gateway


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Fresh schema per test; Redis disabled."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def gateway() -> Gateway:
    return test_gateway


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_user():
    """
    Factory inserting a user directly and returning it as an ``Actor``.

    Users are created with a confirmed email and ``TEST_PASSWORD``.
    """
    counter = {"n": 0}

    async def _make(login: str | None = None, role: Role = Role.USER, confirmed: bool = True):
        counter["n"] += 1
        login = login or f"user{counter['n']}"
        async with test_gateway.transaction() as session:
            user_id = await UserRepository(session).create(
                login=login,
                email=f"{login}@example.com",
                password_hash=hash_password(TEST_PASSWORD),
                full_name=login.title(),
                role=role,
                email_confirmed=confirmed,
            )
        return Actor(id=user_id, role=role)

    return _make


@pytest_asyncio.fixture
async def author(make_user) -> Actor:
    return await make_user("author")


@pytest_asyncio.fixture
async def reader(make_user) -> Actor:
    return await make_user("reader")


@pytest_asyncio.fixture
async def admin(make_user) -> Actor:
    return await make_user("admin", role=Role.ADMIN)


def auth_headers(actor: Actor) -> dict:
    token, _ = create_access_token(actor.id, actor.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    """``headers(actor)`` returns an Authorization header for *actor*."""
    return auth_headers


@pytest.fixture
def stored_rating():
    """``await stored_rating(user_id)`` reads the denormalised rating row."""

    async def _get(user_id: int) -> int:
        async with test_gateway.session() as session:
            return await RatingRepository(session).get(user_id)

    return _get


@pytest.fixture
def computed_rating():
    """``await computed_rating(user_id)`` recomputes the rating from likes."""

    async def _get(user_id: int) -> int:
        async with test_gateway.session() as session:
            return await compute_rating(session, user_id)

    return _get
