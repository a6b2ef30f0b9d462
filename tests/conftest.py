"""
Test infrastructure for the Article Hub API.

Strategy
--------
- SQLite in-memory via aiosqlite replaces Postgres, keeping the suite
  fast and self-contained.
- StaticPool makes every session share the one in-memory connection;
  a second connection would see an empty database.
- pysqlite's own transaction handling is switched off (SQLAlchemy emits
  BEGIN itself) so SAVEPOINTs behave as they do on Postgres, and
  ``PRAGMA foreign_keys`` is enabled so ON DELETE CASCADE fires.
- The app's get_db dependency is overridden so every request uses the
  test session factory.
- Tables are created before and dropped after each test.
- The Redis cache is disabled by setting ``cache._redis = None``; every
  cache call then degrades to a no-op.
- bcrypt runs at its minimum work factor.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from articlehub.cache import cache
from articlehub.config import settings
from articlehub.database import Base, get_db
from articlehub.main import app
from articlehub.middleware import install_query_counter
from articlehub.models import User

settings.BCRYPT_ROUNDS = 4

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine_test.sync_engine, "connect")
def _sqlite_on_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@event.listens_for(engine_test.sync_engine, "begin")
def _sqlite_on_begin(conn):
    conn.exec_driver_sql("BEGIN")


install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency override — replace production get_db with the test session factory
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
    """A live session for service-level tests; never committed."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """httpx client wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory inserting a User row directly, bypassing password hashing."""

    async def _make_user(login: str = "author") -> User:
        user = User(login=login, password_hash="x", firstname="Test", lastname="Author")
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user
