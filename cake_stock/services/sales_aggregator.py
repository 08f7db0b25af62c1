"""
Weekly Sales Report

Aggregates the event log into per-product, per-channel sales counts over the
window [now - WEEKLY_REPORT_DAYS, now], both ends inclusive. Events whose
serial number matches no catalog product are left out of the report.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cake_stock.core.config import Settings, get_settings
from cake_stock.core.enums import CacheKey, ScanEventType, SALES_EVENT_TYPES
from cake_stock.core.exceptions import DependencyError
from cake_stock.core.utils import utc_now
from cake_stock.models.scan_event import ScanEvent
from cake_stock.models.weekly_report import WeeklyReportLine
from cake_stock.schemas.report import ReportPeriod, WeeklyReportLineRead, WeeklyReportResult
from cake_stock.services.cache import TTLCache
from cake_stock.services.product_service import ProductService, resolve_product

logger = logging.getLogger(__name__)

# Event type -> report column
REPORT_COLUMNS = {
    ScanEventType.SALE_BOUTIQUE.value: "sale_boutique",
    ScanEventType.SALE_MARCHE.value: "sale_marche",
    ScanEventType.SALE_SALEYA.value: "sale_saleya",
    ScanEventType.DELIVERY_B2B.value: "delivery_b2b",
}


class SalesAggregator:
    def __init__(self, db: AsyncSession, cache: TTLCache, settings: Optional[Settings] = None):
        self.db = db
        self.cache = cache
        self.settings = settings or get_settings()

    def report_window(self, now: Optional[datetime] = None) -> ReportPeriod:
        end = now or utc_now()
        return ReportPeriod(start=end - timedelta(days=self.settings.WEEKLY_REPORT_DAYS), end=end)

    async def aggregate(self, period: ReportPeriod) -> List[WeeklyReportLineRead]:
        """Per-product sales counts for the period, sorted by product id."""
        result = await self.db.execute(
            select(ScanEvent.serial_number, ScanEvent.event_type)
            .where(
                ScanEvent.event_type.in_([t.value for t in SALES_EVENT_TYPES]),
                ScanEvent.timestamp >= period.start,
                ScanEvent.timestamp <= period.end,
            )
            .order_by(ScanEvent.timestamp, ScanEvent.id)
        )
        events = result.all()
        products = await ProductService(self.db, self.cache).get_catalog()

        lines: Dict[str, WeeklyReportLineRead] = {}
        unmatched = 0
        for serial_number, event_type in events:
            product = resolve_product(serial_number, products)
            if product is None:
                unmatched += 1
                continue

            line = lines.get(product.id)
            if line is None:
                line = WeeklyReportLineRead(product_id=product.id, product_name=product.name or "")
                lines[product.id] = line

            column = REPORT_COLUMNS[event_type]
            setattr(line, column, getattr(line, column) + 1)
            line.total += 1

        if unmatched:
            logger.debug(f"Weekly report skipped {unmatched} event(s) with no matching product")

        return [lines[product_id] for product_id in sorted(lines)]

    async def generate_weekly_report(self, now: Optional[datetime] = None) -> WeeklyReportResult:
        """
        Build the report for the window ending at now and persist its lines,
        replacing the previous report.
        """
        period = self.report_window(now)
        generated_at = utc_now()

        try:
            lines = await self.aggregate(period)

            await self.db.execute(delete(WeeklyReportLine))
            for line in lines:
                self.db.add(WeeklyReportLine(
                    **line.model_dump(),
                    period_start=period.start,
                    period_end=period.end,
                    generated_at=generated_at,
                ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DependencyError(f"Failed to generate weekly report: {str(e)}") from e

        self.cache.invalidate([CacheKey.WEEKLY_REPORT])

        total_sales = sum(line.total for line in lines)
        logger.info(
            f"Weekly report {period.start:%Y-%m-%d} to {period.end:%Y-%m-%d}: "
            f"{total_sales} sales across {len(lines)} products"
        )

        return WeeklyReportResult(
            period=period,
            total_sales=total_sales,
            products_reported=len(lines),
            lines=lines,
        )

    async def get_weekly_report(self) -> dict:
        """Cached view of the last persisted report."""
        async def compute():
            result = await self.db.execute(
                select(WeeklyReportLine).order_by(WeeklyReportLine.product_id)
            )
            rows = list(result.scalars().all())
            period = None
            if rows:
                period = ReportPeriod(start=rows[0].period_start, end=rows[0].period_end).model_dump(mode="json")
            return {
                "period": period,
                "generated_at": rows[0].generated_at.isoformat() if rows else None,
                "total_sales": sum(row.total for row in rows),
                "lines": WeeklyReportLineRead.snapshot_many(rows),
            }

        return await self.cache.with_cache(CacheKey.WEEKLY_REPORT, compute)
