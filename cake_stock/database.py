# cake_stock/database.py

from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import declarative_base
from cake_stock.core.config import get_settings

Base = declarative_base()


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create the async engine, applying pool settings only where the dialect supports them."""
    if not database_url.startswith("sqlite"):
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("max_overflow", 20)
        kwargs.setdefault("pool_timeout", 30)
        kwargs.setdefault("pool_recycle", 1800)
    return create_async_engine(database_url, echo=False, future=True, **kwargs)


settings = get_settings()

engine = build_engine(settings.async_database_url)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def create_tables(target_engine: AsyncEngine = None) -> None:
    """Create every table that does not exist yet."""
    # Import models so they are registered with Base
    from cake_stock import models  # noqa: F401

    async with (target_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def get_session() -> AsyncSession:
    session = async_session()
    try:
        yield session
    finally:
        await session.close()
