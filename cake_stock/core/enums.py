"""
Shared enums and constants used across the application.
"""

from enum import Enum


class ScanEventType(str, Enum):
    """Movement events a serialized unit can go through."""
    PRODUCTION_SCAN = "PRODUCTION_SCAN"
    BOUTIQUE_STOCK_SCAN = "BOUTIQUE_STOCK_SCAN"
    MARCHE_STOCK_SCAN = "MARCHE_STOCK_SCAN"
    SALEYA_STOCK_SCAN = "SALEYA_STOCK_SCAN"
    DELIVERY_B2B = "DELIVERY_B2B"
    SALE_BOUTIQUE = "SALE_BOUTIQUE"
    SALE_MARCHE = "SALE_MARCHE"
    SALE_SALEYA = "SALE_SALEYA"

    @property
    def status_label(self) -> str:
        # "SALE_BOUTIQUE" -> "SALE BOUTIQUE"
        return self.value.replace("_", " ").upper()

    @classmethod
    def parse(cls, value):
        """Return the matching member, or None for an unknown value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


# Events that count as a sale in the weekly report, in report column order
SALES_EVENT_TYPES = (
    ScanEventType.SALE_BOUTIQUE,
    ScanEventType.SALE_MARCHE,
    ScanEventType.SALE_SALEYA,
    ScanEventType.DELIVERY_B2B,
)


class Channel(str, Enum):
    """Stock channels tracked per product. Values are StockLevel column names."""
    IN_WAREHOUSE = "in_warehouse"
    BOUTIQUE = "boutique_stock"
    MARCHE = "marche_stock"
    SALEYA = "saleya_stock"
    B2B_DELIVERED = "b2b_delivered"


class CacheKey(str, Enum):
    """Logical view names held in the TTL cache."""
    LOGS = "logs"
    PRODUCTS = "products"
    SUMMARY = "summary"
    USERS = "users"
    CAKE_STATUS = "cake_status"
    LIVE_OPS = "live_ops"
    B2B_CLIENTS = "b2b_clients"
    WEEKLY_REPORT = "weekly_report"


# Every view derived from the event log or the stock levels
SCAN_INVALIDATED_KEYS = (
    CacheKey.LOGS,
    CacheKey.SUMMARY,
    CacheKey.CAKE_STATUS,
    CacheKey.LIVE_OPS,
    CacheKey.WEEKLY_REPORT,
)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DUPLICATE_KEY = "duplicate_key"
    DEPENDENCY = "dependency"
