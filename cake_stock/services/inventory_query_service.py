"""
Read side of the inventory: every cached view the dashboard polls, plus the
bulk log clear that resets the views built from the event log.
"""

import logging
from collections import Counter
from typing import List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cake_stock.core.config import Settings, get_settings
from cake_stock.core.enums import CacheKey, Channel
from cake_stock.core.exceptions import DependencyError
from cake_stock.core.utils import utc_now
from cake_stock.models.b2b_client import B2BClient
from cake_stock.models.product import Product
from cake_stock.models.scan_event import ScanEvent
from cake_stock.models.stock_level import StockLevel
from cake_stock.models.unit_status import UnitStatus
from cake_stock.models.user import User
from cake_stock.schemas.directory import B2BClientRead, UserRead
from cake_stock.schemas.scan import ClearLogsResult, ScanEventRead, UnitStatusRead
from cake_stock.schemas.stock import ChannelTotals, LiveOperations, StockSummary, StockSummaryLine
from cake_stock.services.cache import TTLCache
from cake_stock.services.unit_status_service import UnitStatusTracker

logger = logging.getLogger(__name__)

LOG_CLEAR_INVALIDATED_KEYS = (
    CacheKey.LOGS,
    CacheKey.CAKE_STATUS,
    CacheKey.LIVE_OPS,
    CacheKey.WEEKLY_REPORT,
)


def channel_totals(records: List[StockLevel]) -> ChannelTotals:
    totals = {channel.value: 0 for channel in Channel}
    for record in records:
        for channel in Channel:
            totals[channel.value] += getattr(record, channel.value) or 0
    return ChannelTotals(**totals)


class InventoryQueryService:
    def __init__(self, db: AsyncSession, cache: TTLCache, settings: Optional[Settings] = None):
        self.db = db
        self.cache = cache
        self.settings = settings or get_settings()

    async def _all(self, statement) -> list:
        try:
            result = await self.db.execute(statement)
        except SQLAlchemyError as e:
            raise DependencyError(f"Failed to read from the row store: {str(e)}") from e
        return list(result.scalars().all())

    async def list_logs(self) -> List[dict]:
        """Whole event log, newest first."""
        async def compute():
            events = await self._all(select(ScanEvent).order_by(ScanEvent.timestamp.desc(), ScanEvent.id.desc()))
            return ScanEventRead.snapshot_many(events)

        return await self.cache.with_cache(CacheKey.LOGS, compute)

    async def get_summary(self) -> dict:
        """Stock levels per product with channel totals and reorder flags."""
        async def compute():
            records = await self._all(select(StockLevel).order_by(StockLevel.product_id))
            reorder_levels = dict(
                (await self.db.execute(select(Product.id, Product.reorder_level))).all()
            )

            lines = []
            for record in records:
                line = StockSummaryLine.model_validate(record)
                line.total = sum(getattr(record, channel.value) or 0 for channel in Channel)
                reorder_level = reorder_levels.get(record.product_id) or 0
                line.needs_reorder = reorder_level > 0 and record.in_warehouse < reorder_level
                lines.append(line)

            summary = StockSummary(
                products=lines,
                totals=channel_totals(records),
                products_needing_reorder=sum(1 for line in lines if line.needs_reorder),
            )
            return summary.model_dump(mode="json")

        return await self.cache.with_cache(CacheKey.SUMMARY, compute)

    async def list_users(self) -> List[dict]:
        async def compute():
            return UserRead.snapshot_many(await self._all(select(User).order_by(User.id)))

        return await self.cache.with_cache(CacheKey.USERS, compute)

    async def list_b2b_clients(self) -> List[dict]:
        async def compute():
            return B2BClientRead.snapshot_many(await self._all(select(B2BClient).order_by(B2BClient.id)))

        return await self.cache.with_cache(CacheKey.B2B_CLIENTS, compute)

    async def get_cake_status(self) -> List[dict]:
        """Current status of every tracked unit, most recently updated first."""
        async def compute():
            statuses = await UnitStatusTracker(self.db).list_statuses()
            return UnitStatusRead.snapshot_many(statuses)

        return await self.cache.with_cache(CacheKey.CAKE_STATUS, compute)

    async def get_live_operations(self) -> dict:
        """Today's scan activity (UTC day) alongside the current stock totals."""
        async def compute():
            now = utc_now()
            day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

            todays_events = await self._all(
                select(ScanEvent)
                .where(ScanEvent.timestamp >= day_start)
                .order_by(ScanEvent.timestamp.desc(), ScanEvent.id.desc())
            )
            recent = await self._all(
                select(ScanEvent)
                .order_by(ScanEvent.timestamp.desc(), ScanEvent.id.desc())
                .limit(self.settings.LIVE_OPS_RECENT_LIMIT)
            )
            records = await self._all(select(StockLevel))

            live = LiveOperations(
                date=day_start.date().isoformat(),
                events_today=len(todays_events),
                events_by_type=dict(Counter(e.event_type for e in todays_events)),
                events_by_location=dict(Counter(e.location for e in todays_events)),
                recent_events=ScanEventRead.snapshot_many(recent),
                stock_totals=channel_totals(records),
            )
            return live.model_dump(mode="json")

        return await self.cache.with_cache(CacheKey.LIVE_OPS, compute)

    async def clear_logs(self) -> ClearLogsResult:
        """
        Bulk-clear the event log and the unit statuses derived from it.
        Stock levels are left as they are.
        """
        try:
            events = await self.db.scalar(select(func.count()).select_from(ScanEvent))
            statuses = await self.db.scalar(select(func.count()).select_from(UnitStatus))
            await self.db.execute(delete(ScanEvent))
            await self.db.execute(delete(UnitStatus))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DependencyError(f"Failed to clear logs: {str(e)}") from e

        self.cache.invalidate(LOG_CLEAR_INVALIDATED_KEYS)
        logger.info(f"Cleared {events} scan events and {statuses} unit statuses")

        return ClearLogsResult(cleared_events=events or 0, cleared_statuses=statuses or 0)
