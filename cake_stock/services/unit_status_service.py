# cake_stock/services/unit_status_service.py
import logging
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cake_stock.core.enums import ScanEventType
from cake_stock.models.unit_status import UnitStatus

logger = logging.getLogger(__name__)


def status_label(event_type: str) -> str:
    """Readable status for an event type: underscores to spaces, upper-cased."""
    parsed = ScanEventType.parse(event_type)
    if parsed is not None:
        return parsed.status_label
    return str(event_type).replace("_", " ").upper()


class UnitStatusTracker:
    """
    Maintains one current-status row per serial number.

    Callers own the transaction: upsert() only stages the change.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def upsert(self, serial_number: str, event_type: str, location: str, timestamp: datetime) -> UnitStatus:
        record = await self.db.get(UnitStatus, serial_number)
        status = status_label(event_type)

        if record is None:
            record = UnitStatus(
                serial_number=serial_number,
                current_location=location,
                status=status,
                last_update=timestamp,
            )
            self.db.add(record)
            logger.debug(f"New unit status for {serial_number}: {status} @ {location}")
        else:
            record.current_location = location
            record.status = status
            record.last_update = timestamp

        await self.db.flush()
        return record

    async def list_statuses(self) -> List[UnitStatus]:
        result = await self.db.execute(
            select(UnitStatus).order_by(UnitStatus.last_update.desc(), UnitStatus.serial_number)
        )
        return list(result.scalars().all())
