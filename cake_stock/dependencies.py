from typing import AsyncGenerator
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cake_stock.core.config import Settings, get_settings
from cake_stock.database import async_session
from cake_stock.services.cache import TTLCache
from cake_stock.services.locks import ProductLockRegistry
from cake_stock.services.inventory_query_service import InventoryQueryService
from cake_stock.services.product_service import ProductService
from cake_stock.services.sales_aggregator import SalesAggregator
from cake_stock.services.scan_processor import ScanEventProcessor
from cake_stock.services.stock_reconciler import StockReconciler


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_cache(request: Request) -> TTLCache:
    """The process-wide view cache created in the app lifespan."""
    return request.app.state.cache


def get_lock_registry(request: Request) -> ProductLockRegistry:
    return request.app.state.stock_locks


def get_product_service(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
) -> ProductService:
    return ProductService(db, cache)


def get_reconciler(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
) -> StockReconciler:
    return StockReconciler(db, cache)


def get_scan_processor(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    locks: ProductLockRegistry = Depends(get_lock_registry),
    settings: Settings = Depends(get_settings),
) -> ScanEventProcessor:
    return ScanEventProcessor(db, cache, locks, settings)


def get_sales_aggregator(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
) -> SalesAggregator:
    return SalesAggregator(db, cache, settings)


def get_query_service(
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
) -> InventoryQueryService:
    return InventoryQueryService(db, cache, settings)
