"""
Schemas for the derived stock-level view.
"""
from typing import Dict, List

from cake_stock.schemas.base import BaseSchema


class StockLevelRead(BaseSchema):
    product_id: str
    product_name: str
    in_warehouse: int = 0
    boutique_stock: int = 0
    marche_stock: int = 0
    saleya_stock: int = 0
    b2b_delivered: int = 0


class StockSummaryLine(StockLevelRead):
    total: int = 0
    needs_reorder: bool = False


class ChannelTotals(BaseSchema):
    in_warehouse: int = 0
    boutique_stock: int = 0
    marche_stock: int = 0
    saleya_stock: int = 0
    b2b_delivered: int = 0


class StockSummary(BaseSchema):
    products: List[StockSummaryLine]
    totals: ChannelTotals
    products_needing_reorder: int = 0


class ReconcileResult(BaseSchema):
    new_records_added: int
    total_products: int
    message: str


class LiveOperations(BaseSchema):
    date: str
    events_today: int
    events_by_type: Dict[str, int]
    events_by_location: Dict[str, int]
    recent_events: List[dict]
    stock_totals: ChannelTotals
