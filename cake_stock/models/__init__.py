from .product import Product
from .scan_event import ScanEvent
from .stock_level import StockLevel
from .unit_status import UnitStatus
from .user import User
from .b2b_client import B2BClient
from .weekly_report import WeeklyReportLine

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'Product',
    'ScanEvent',
    'StockLevel',
    'UnitStatus',
    'User',
    'B2BClient',
    'WeeklyReportLine',
]
