from .base import BaseSchema
from .product import ProductCreate, ProductRead
from .scan import ScanRequest, ScanRecordResult, ScanEventRead, UnitStatusRead, ClearLogsResult
from .stock import StockLevelRead, StockSummary, StockSummaryLine, ChannelTotals, ReconcileResult, LiveOperations
from .report import ReportPeriod, WeeklyReportLineRead, WeeklyReportResult
from .directory import UserRead, B2BClientRead
from .responses import ApiResponse
