"""
Keeps the derived stock-level view aligned with the catalog.

Every catalog product must have exactly one StockLevel row. The reconciler
adds a zero-initialised row for each product that lacks one; it never removes
rows. Any code path that finds a missing row calls reconcile() instead of
failing.

Rows are inserted with ON CONFLICT DO NOTHING: a row another session created
between our read and our insert is left as it is and not counted as added.
"""

import logging

from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cake_stock.core.enums import CacheKey
from cake_stock.core.exceptions import DependencyError
from cake_stock.models.product import Product
from cake_stock.models.stock_level import StockLevel
from cake_stock.schemas.stock import ReconcileResult
from cake_stock.services.cache import TTLCache

logger = logging.getLogger(__name__)

CONFLICT_TOLERANT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class StockReconciler:
    def __init__(self, db: AsyncSession, cache: TTLCache):
        self.db = db
        self.cache = cache

    async def _insert_stock_level(self, product_id: str, name: str) -> bool:
        """Insert a zeroed row for product_id. Returns False if one already existed."""
        values = dict(
            product_id=product_id,
            product_name=name or "",
            in_warehouse=0,
            boutique_stock=0,
            marche_stock=0,
            saleya_stock=0,
            b2b_delivered=0,
            version=1,
        )

        insert_fn = CONFLICT_TOLERANT_INSERTS.get(self.db.get_bind().dialect.name)
        if insert_fn is None:
            statement = insert(StockLevel.__table__).values(**values)
        else:
            statement = (
                insert_fn(StockLevel.__table__)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["product_id"])
            )

        result = await self.db.execute(statement)
        return (result.rowcount or 0) > 0

    async def reconcile(self) -> ReconcileResult:
        """
        Create missing stock-level rows. Idempotent.

        Returns:
            ReconcileResult with the number of rows added and the catalog size
        """
        try:
            products = (await self.db.execute(
                select(Product.id, Product.name).order_by(Product.id)
            )).all()
            existing = set((await self.db.execute(select(StockLevel.product_id))).scalars().all())

            missing = [(product_id, name) for product_id, name in products
                       if product_id and product_id not in existing]

            added = 0
            for product_id, name in missing:
                if await self._insert_stock_level(product_id, name):
                    added += 1
                else:
                    logger.debug(f"Stock level for {product_id} already created by another session")

            if missing:
                await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DependencyError(f"Stock level reconciliation failed: {str(e)}") from e

        self.cache.invalidate([CacheKey.SUMMARY])

        if added:
            message = f"Added {added} new stock level record(s)"
            logger.info(f"Reconcile: {message} ({len(products)} products in catalog)")
        else:
            message = "All products already have stock level records"
            logger.debug(f"Reconcile: {message}")

        return ReconcileResult(
            new_records_added=added,
            total_products=len(products),
            message=message,
        )
