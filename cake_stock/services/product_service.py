"""
Purpose: The catalog service. Reads, creates and deletes Product rows and keeps
the derived stock-level view in step with every catalog change.

Key features of this service:
- Typed catalog reads (rows without an id are dropped)
- add_product runs the reconciler synchronously, so a new product is visible
  in the summary straight away
- delete_product cascades to the product's stock-level row
- Serial numbers are resolved to products by longest id prefix
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cake_stock.core.enums import CacheKey
from cake_stock.core.exceptions import DependencyError, DuplicateKeyError, NotFoundError
from cake_stock.core.utils import longest_prefix_match
from cake_stock.models.product import Product
from cake_stock.models.stock_level import StockLevel
from cake_stock.schemas.product import ProductCreate, ProductRead
from cake_stock.services.cache import TTLCache
from cake_stock.services.stock_reconciler import StockReconciler

logger = logging.getLogger(__name__)

CATALOG_INVALIDATED_KEYS = (CacheKey.PRODUCTS, CacheKey.SUMMARY)


def resolve_product(serial_number: str, products: Sequence[Product]) -> Optional[Product]:
    """Pick the product whose id is the longest prefix of serial_number."""
    by_id = {p.id: p for p in products if p.id}
    match = longest_prefix_match(serial_number, by_id.keys())
    return by_id.get(match) if match else None


class ProductService:
    def __init__(self, db: AsyncSession, cache: TTLCache):
        self.db = db
        self.cache = cache

    async def get_catalog(self) -> List[Product]:
        """All catalog rows in id order, skipping rows without an id."""
        try:
            result = await self.db.execute(select(Product).order_by(Product.id))
        except SQLAlchemyError as e:
            raise DependencyError(f"Failed to read catalog: {str(e)}") from e
        return [p for p in result.scalars().all() if p.id]

    async def list_products(self) -> List[dict]:
        """Cached, JSON-ready catalog listing."""
        async def compute():
            return ProductRead.snapshot_many(await self.get_catalog())

        return await self.cache.with_cache(CacheKey.PRODUCTS, compute)

    async def get_product(self, product_id: str) -> ProductRead:
        product = await self.db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product '{product_id}' not found")
        return ProductRead.from_orm_model(product)

    async def resolve_serial(self, serial_number: str) -> Optional[Product]:
        return resolve_product(serial_number, await self.get_catalog())

    async def add_product(self, product_data: ProductCreate) -> ProductRead:
        """
        Creates a catalog product and its zero-initialised stock-level row.

        Raises:
            DuplicateKeyError: If the id is already in the catalog
            DependencyError: If the row store fails
        """
        if await self.db.get(Product, product_data.id) is not None:
            raise DuplicateKeyError(f"Product '{product_data.id}' already exists")

        product = Product(**product_data.model_dump())
        try:
            self.db.add(product)
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with another writer
            await self.db.rollback()
            raise DuplicateKeyError(f"Product '{product_data.id}' already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DependencyError(f"Failed to create product: {str(e)}") from e

        logger.info(f"Product {product.id} added to catalog")

        await StockReconciler(self.db, self.cache).reconcile()
        self.cache.invalidate(CATALOG_INVALIDATED_KEYS)

        return ProductRead.from_orm_model(product)

    async def delete_product(self, product_id: str) -> dict:
        """
        Deletes a catalog product and, if present, its stock-level row.

        Raises:
            NotFoundError: If the product is not in the catalog
        """
        product = await self.db.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product '{product_id}' not found")

        try:
            await self.db.delete(product)
            result = await self.db.execute(
                delete(StockLevel).where(StockLevel.product_id == product_id)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DependencyError(f"Failed to delete product {product_id}: {str(e)}") from e

        stock_removed = (result.rowcount or 0) > 0
        logger.info(f"Product {product_id} deleted (stock level removed: {stock_removed})")
        self.cache.invalidate(CATALOG_INVALIDATED_KEYS)

        return {"product_id": product_id, "stock_level_removed": stock_removed}
