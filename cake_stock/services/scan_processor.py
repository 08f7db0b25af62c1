"""
Scan event processor: turns one raw movement event into per-channel stock deltas.

Processing order for record():
1. Validate the payload (nothing is written on failure)
2. Append the ScanEvent - unconditional once validation passes
3. Upsert the unit's current status
4. Resolve the owning product by serial-number prefix
5. Ensure its stock-level row exists, reconciling once if it does not
6. Apply the transition under the product lock, clamping counters at zero
7. Invalidate every view derived from the log or the stock levels

Failures after step 2 are logged and swallowed: the event log is the source of
truth and derived views can be repaired by reconciling or reprocessing.
"""

import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.ext.asyncio import AsyncSession

from cake_stock.core.config import Settings, get_settings
from cake_stock.core.enums import Channel, ScanEventType, SCAN_INVALIDATED_KEYS
from cake_stock.core.exceptions import DependencyError, ValidationError
from cake_stock.core.utils import utc_now
from cake_stock.models.scan_event import ScanEvent
from cake_stock.models.stock_level import StockLevel
from cake_stock.schemas.scan import ScanRecordResult
from cake_stock.services.cache import TTLCache
from cake_stock.services.locks import ProductLockRegistry
from cake_stock.services.product_service import ProductService
from cake_stock.services.stock_reconciler import StockReconciler
from cake_stock.services.unit_status_service import UnitStatusTracker

logger = logging.getLogger(__name__)


TRANSITIONS: Dict[ScanEventType, Dict[Channel, int]] = {
    ScanEventType.PRODUCTION_SCAN: {Channel.IN_WAREHOUSE: +1},
    ScanEventType.BOUTIQUE_STOCK_SCAN: {Channel.IN_WAREHOUSE: -1, Channel.BOUTIQUE: +1},
    ScanEventType.MARCHE_STOCK_SCAN: {Channel.IN_WAREHOUSE: -1, Channel.MARCHE: +1},
    ScanEventType.SALEYA_STOCK_SCAN: {Channel.IN_WAREHOUSE: -1, Channel.SALEYA: +1},
    ScanEventType.DELIVERY_B2B: {Channel.IN_WAREHOUSE: -1, Channel.B2B_DELIVERED: +1},
    ScanEventType.SALE_BOUTIQUE: {Channel.BOUTIQUE: -1},
    ScanEventType.SALE_MARCHE: {Channel.MARCHE: -1},
    ScanEventType.SALE_SALEYA: {Channel.SALEYA: -1},
}


def apply_transition(record: StockLevel, event_type: ScanEventType) -> Dict[str, int]:
    """
    Apply the deltas for event_type to record in place.

    Every counter is clamped to >= 0. Returns the new value of each touched channel.
    """
    changes = {}
    for channel, delta in TRANSITIONS[event_type].items():
        current = getattr(record, channel.value) or 0
        new_value = max(0, current + delta)
        setattr(record, channel.value, new_value)
        changes[channel.value] = new_value
    return changes


def _required(name: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required")
    return str(value).strip()


class ScanEventProcessor:
    def __init__(
        self,
        db: AsyncSession,
        cache: TTLCache,
        locks: Optional[ProductLockRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.cache = cache
        self.locks = locks or ProductLockRegistry()
        self.settings = settings or get_settings()

    async def record(
        self,
        serial_number: Optional[str],
        event_type: Optional[str],
        location: Optional[str],
        client_id: Optional[str] = None,
    ) -> ScanRecordResult:
        """
        Record one scan and update the derived views.

        Raises:
            ValidationError: Missing serial number, event type or location, or an
                unknown event type (unless ALLOW_UNKNOWN_SCAN_EVENTS is set)
            DependencyError: If the event itself could not be appended
        """
        serial_number = _required("serial_number", serial_number)
        raw_event_type = _required("event_type", event_type).upper()
        location = _required("location", location)
        client_id = client_id.strip() if client_id and client_id.strip() else None

        parsed = ScanEventType.parse(raw_event_type)
        if parsed is None and not self.settings.ALLOW_UNKNOWN_SCAN_EVENTS:
            raise ValidationError(f"Unknown event type: {raw_event_type}")
        event_type_value = parsed.value if parsed else raw_event_type

        timestamp = utc_now()
        event = ScanEvent(
            timestamp=timestamp,
            serial_number=serial_number,
            event_type=event_type_value,
            location=location,
            client_id=client_id,
        )
        try:
            self.db.add(event)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DependencyError(f"Failed to append scan event: {str(e)}") from e

        logger.info(f"Scan recorded: {serial_number} {event_type_value} @ {location}")

        try:
            await self._update_derived_views(serial_number, parsed, event_type_value, location, timestamp)
        except Exception as e:
            # The appended event stays; derived views catch up on reconcile
            await self.db.rollback()
            logger.exception(f"Derived view update failed for {serial_number} ({event_type_value}): {e}")
        finally:
            self.cache.invalidate(SCAN_INVALIDATED_KEYS)

        return ScanRecordResult(
            serial_number=serial_number,
            timestamp=timestamp,
            event_type=event_type_value,
            location=location,
            client_id=client_id,
        )

    async def _update_derived_views(self, serial_number, parsed, event_type_value, location, timestamp):
        await UnitStatusTracker(self.db).upsert(serial_number, event_type_value, location, timestamp)
        await self.db.commit()

        if parsed is None:
            logger.warning(f"Unhandled event type {event_type_value} for {serial_number}; stock unchanged")
            return

        product = await ProductService(self.db, self.cache).resolve_serial(serial_number)
        if product is None:
            logger.warning(f"No product matches serial number {serial_number}; stock unchanged")
            return

        # Rollbacks during retries expire ORM objects; only the id is used from here on
        product_id = product.id

        await self.ensure_stock_level(product_id)
        changes = await self.apply_to_stock(product_id, parsed)
        logger.info(f"Stock updated for {product_id} after {parsed.value}: {changes}")

    async def _stock_level_exists(self, product_id: str) -> bool:
        result = await self.db.execute(
            select(StockLevel.product_id).where(StockLevel.product_id == product_id)
        )
        return result.scalar_one_or_none() is not None

    async def ensure_stock_level(self, product_id: str) -> None:
        """
        Make sure product_id has a stock-level row, reconciling at most once.

        Runs under the product lock. A failed reconcile is not fatal if another
        session created the row in the meantime.

        Raises:
            DependencyError: If the row is still missing after reconciliation
        """
        async with self.locks.acquire(product_id):
            if await self._stock_level_exists(product_id):
                return

            logger.info(f"Stock level missing for {product_id}; reconciling")
            try:
                await StockReconciler(self.db, self.cache).reconcile()
            except DependencyError as e:
                if not await self._stock_level_exists(product_id):
                    raise
                logger.warning(f"Reconcile failed but stock level for {product_id} now exists: {e.message}")
                return

            if not await self._stock_level_exists(product_id):
                raise DependencyError(f"Stock level for {product_id} still missing after reconciliation")

    async def apply_to_stock(self, product_id: str, event_type: ScanEventType) -> Dict[str, int]:
        """
        Read-modify-write the product's counters under its lock.

        A version conflict with another process is retried with a fresh read.
        """
        max_attempts = max(1, self.settings.STOCK_UPDATE_MAX_ATTEMPTS)

        async with self.locks.acquire(product_id):
            for attempt in range(1, max_attempts + 1):
                result = await self.db.execute(
                    select(StockLevel)
                    .where(StockLevel.product_id == product_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                record = result.scalar_one_or_none()
                if record is None:
                    raise DependencyError(f"Stock level for {product_id} disappeared during update")

                changes = apply_transition(record, event_type)
                try:
                    await self.db.commit()
                    return changes
                except StaleDataError:
                    await self.db.rollback()
                    logger.warning(
                        f"Stock level for {product_id} changed concurrently "
                        f"(attempt {attempt}/{max_attempts}); retrying"
                    )

        raise DependencyError(f"Could not update stock for {product_id} after {max_attempts} attempts")
