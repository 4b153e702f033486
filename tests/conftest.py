"""
Test infrastructure for the Music Catalog API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- httpx's ASGITransport does not run the lifespan, so every dependency that
  normally reads a process-wide client from ``app.state`` is overridden:
  the session factory, the cache, the single-flight registry and the cover
  storage.
- Redis is replaced by ``InMemoryCache``, a double honouring the
  ``CacheClient`` contract (None on miss, ``CacheUnavailableError`` when
  switched to ``down``) so cache-aside behaviour is observable in tests.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.dependencies import get_cache, get_cover_storage, get_flights
from app.exceptions import CacheUnavailableError
from app.main import app
from app.singleflight import SingleFlight
from app.storage import CoverStorage

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Cache double
# ---------------------------------------------------------------------------

class InMemoryCache:
    """Dict-backed stand-in for ``CacheClient``; TTLs are recorded, not enforced."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.down = False
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        if self.down:
            raise CacheUnavailableError(f"cache {op} failed: connection refused")

    async def get(self, key: str) -> str | None:
        self._check("get", key)
        return self.data.get(key)

    async def set(self, key: str, value, ttl: int | None = None) -> None:
        self._check("set", key)
        self.data[key] = str(value)
        self.ttls[key] = ttl

    async def delete(self, key: str) -> None:
        self._check("delete", key)
        self.data.pop(key, None)

    async def ping(self) -> bool:
        return not self.down

    @property
    def stats(self) -> dict:
        return {"hits": 0, "misses": 0, "errors": 0, "hit_rate": 0.0}


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
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. seeding data, asserting ORM state).
    """
    async with async_session_test() as session:
        yield session


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def flights() -> SingleFlight:
    return SingleFlight()


@pytest_asyncio.fixture
async def async_client(cache: InMemoryCache, flights: SingleFlight, tmp_path) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport,
    with the shared clients replaced by per-test instances.
    """
    storage = CoverStorage(tmp_path / "covers", max_bytes=512000)
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_flights] = lambda: flights
    app.dependency_overrides[get_cover_storage] = lambda: storage
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    for dependency in (get_cache, get_flights, get_cover_storage):
        app.dependency_overrides.pop(dependency, None)
