# tests/conftest.py
import os

# Keep imports of the application away from a real Postgres
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./cake_stock_test.db")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cake_stock.core.config import Settings, get_settings
from cake_stock.database import Base, build_engine
from cake_stock.dependencies import get_cache, get_db, get_lock_registry
from cake_stock.main import app
from cake_stock import models  # noqa: F401
from cake_stock.services.cache import TTLCache
from cake_stock.services.locks import ProductLockRegistry
from cake_stock.services.scan_processor import ScanEventProcessor


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def settings():
    """Provide test settings"""
    return Settings(
        DATABASE_URL="sqlite+aiosqlite://",
        CACHE_TTL_SECONDS=10,
        STOCK_UPDATE_MAX_ATTEMPTS=3,
        ALLOW_UNKNOWN_SCAN_EVENTS=False,
    )


@pytest.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a fresh SQLite database for each test function."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'cake_stock.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide a database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=10, clock=clock)


@pytest.fixture
def locks():
    return ProductLockRegistry()


@pytest.fixture
def processor(db_session, cache, locks, settings):
    return ScanEventProcessor(db_session, cache, locks, settings)


@pytest.fixture
async def api_client(session_factory, cache, locks, settings):
    """HTTP client against the app with the test database and cache injected"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_lock_registry] = lambda: locks
    app.dependency_overrides[get_settings] = lambda: settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def sample_product_data():
    """Provide sample product data for tests"""
    return {
        "id": "TRT",
        "name": "Tarte Tropezienne",
        "category": "Gateaux",
        "unit_of_measure": "piece",
        "unit_cost": 4.5,
        "supplier_name": "Atelier",
        "reorder_level": 5,
        "reorder_quantity": 20,
        "storage_location": "Chambre froide",
        "shelf_life_days": 3,
        "is_perishable": True,
    }
