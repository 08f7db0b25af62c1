# cake_stock/services/catalog_importer.py
"""
Bulk catalog import from CSV.

Rows are parsed with the same coercions as the catalog reader: "true"
(any case) for booleans, 0 for numeric cells that do not parse, and rows
without an id are skipped. Each new product goes through
ProductService.add_product, so its stock-level row is created straight away.
"""

import logging
from typing import Any, Dict

import pandas as pd
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from cake_stock.core.exceptions import DuplicateKeyError
from cake_stock.schemas.product import ProductCreate
from cake_stock.services.cache import TTLCache
from cake_stock.services.product_service import ProductService

logger = logging.getLogger(__name__)


class CatalogImporter:
    """
    Imports catalog rows from a CSV file.

    Attributes:
        db (AsyncSession): SQLAlchemy async session for database operations.
        cache (TTLCache): View cache invalidated by each product added.
    """

    def __init__(self, db: AsyncSession, cache: TTLCache):
        self.db = db
        self.cache = cache

    async def import_csv(self, file_path: str) -> Dict[str, Any]:
        """
        Import every row of a catalog CSV.

        Args:
            file_path (str): Path to the CSV file. Headers may be snake_case
                (unit_cost) or camelCase (unitCost).

        Returns:
            Dict with total_rows, imported, skipped and errors keyed by row index
        """
        # Read everything as text; coercion happens in ProductCreate
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
        return await self.import_frame(df)

    async def import_frame(self, df: pd.DataFrame) -> Dict[str, Any]:
        service = ProductService(self.db, self.cache)
        imported = 0
        skipped = 0
        errors: Dict[int, str] = {}

        for index, row in df.iterrows():
            try:
                product_data = ProductCreate.from_catalog_row(row.to_dict())
            except PydanticValidationError as e:
                errors[int(index)] = f"Invalid row: {e.errors()[0]['msg']}"
                continue

            if product_data is None:
                skipped += 1
                continue

            try:
                await service.add_product(product_data)
                imported += 1
            except DuplicateKeyError as e:
                errors[int(index)] = e.message

        logger.info(f"Catalog import: {imported} imported, {skipped} skipped, {len(errors)} errors")
        return {
            "total_rows": len(df),
            "imported": imported,
            "skipped": skipped,
            "errors": errors,
        }
