"""
Schemas for the weekly sales report.
"""
from datetime import datetime
from typing import List

from cake_stock.schemas.base import BaseSchema


class ReportPeriod(BaseSchema):
    start: datetime
    end: datetime


class WeeklyReportLineRead(BaseSchema):
    product_id: str
    product_name: str
    sale_boutique: int = 0
    sale_marche: int = 0
    sale_saleya: int = 0
    delivery_b2b: int = 0
    total: int = 0


class WeeklyReportResult(BaseSchema):
    period: ReportPeriod
    total_sales: int
    products_reported: int
    lines: List[WeeklyReportLineRead]
