# tests/unit/services/test_scan_processor.py
import asyncio
import logging

import pytest
from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from cake_stock.core.config import Settings
from cake_stock.core.enums import CacheKey, Channel, ScanEventType, SCAN_INVALIDATED_KEYS
from cake_stock.core.exceptions import DependencyError, ValidationError
from cake_stock.models import ScanEvent, StockLevel, UnitStatus
from cake_stock.services.locks import ProductLockRegistry
from cake_stock.services.scan_processor import ScanEventProcessor, TRANSITIONS, apply_transition
from cake_stock.services.stock_reconciler import StockReconciler
from tests.factories import add_catalog_product, count_rows, fetch_stock


def stock_tuple(record):
    return tuple(getattr(record, channel.value) for channel in Channel)


# --- Pure transition table ---

@pytest.mark.parametrize("event_type, expected", [
    (ScanEventType.PRODUCTION_SCAN, (3, 1, 1, 1, 1)),
    (ScanEventType.BOUTIQUE_STOCK_SCAN, (1, 2, 1, 1, 1)),
    (ScanEventType.MARCHE_STOCK_SCAN, (1, 1, 2, 1, 1)),
    (ScanEventType.SALEYA_STOCK_SCAN, (1, 1, 1, 2, 1)),
    (ScanEventType.DELIVERY_B2B, (1, 1, 1, 1, 2)),
    (ScanEventType.SALE_BOUTIQUE, (2, 0, 1, 1, 1)),
    (ScanEventType.SALE_MARCHE, (2, 1, 0, 1, 1)),
    (ScanEventType.SALE_SALEYA, (2, 1, 1, 0, 1)),
])
def test_transition_table(event_type, expected):
    record = StockLevel(in_warehouse=2, boutique_stock=1, marche_stock=1, saleya_stock=1, b2b_delivered=1)
    apply_transition(record, event_type)
    assert stock_tuple(record) == expected


def test_every_event_type_has_a_transition():
    assert set(TRANSITIONS) == set(ScanEventType)


def test_decrements_clamp_at_zero():
    record = StockLevel(in_warehouse=0, boutique_stock=1, marche_stock=0, saleya_stock=0, b2b_delivered=0)

    apply_transition(record, ScanEventType.SALE_BOUTIQUE)
    apply_transition(record, ScanEventType.SALE_BOUTIQUE)
    changes = apply_transition(record, ScanEventType.BOUTIQUE_STOCK_SCAN)

    assert changes == {"in_warehouse": 0, "boutique_stock": 1}
    assert stock_tuple(record) == (0, 1, 0, 0, 0)


# --- record() ---

@pytest.mark.asyncio
async def test_production_then_boutique_moves_unit(db_session, processor):
    await add_catalog_product(db_session, "TRT")
    await StockReconciler(db_session, processor.cache).reconcile()

    await processor.record("TRT-0001", "PRODUCTION_SCAN", "Atelier")
    await processor.record("TRT-0001", "BOUTIQUE_STOCK_SCAN", "Boutique")

    record = await fetch_stock(db_session, "TRT")
    assert stock_tuple(record) == (0, 1, 0, 0, 0)


@pytest.mark.asyncio
async def test_record_returns_event_details(db_session, processor):
    result = await processor.record(" TRT-0001 ", "production_scan", " Atelier ", client_id="tablet-1")

    assert result.serial_number == "TRT-0001"
    assert result.event_type == "PRODUCTION_SCAN"
    assert result.location == "Atelier"
    assert result.client_id == "tablet-1"
    assert result.timestamp is not None


@pytest.mark.asyncio
async def test_counters_never_go_negative(db_session, processor):
    await add_catalog_product(db_session, "TRT")

    for event_type in ("SALE_BOUTIQUE", "SALE_MARCHE", "SALE_SALEYA", "DELIVERY_B2B",
                       "PRODUCTION_SCAN", "SALEYA_STOCK_SCAN", "SALE_SALEYA", "SALE_SALEYA"):
        await processor.record("TRT-0001", event_type, "Nice")
        record = await fetch_stock(db_session, "TRT")
        assert min(stock_tuple(record)) >= 0

    # DELIVERY_B2B still counts the delivery even from an empty warehouse
    assert stock_tuple(await fetch_stock(db_session, "TRT")) == (0, 0, 0, 0, 1)


@pytest.mark.asyncio
async def test_missing_stock_level_self_heals(db_session, processor, mocker):
    await add_catalog_product(db_session, "TRT")
    reconcile_spy = mocker.spy(StockReconciler, "reconcile")

    await processor.record("TRT-0001", "PRODUCTION_SCAN", "Atelier")

    assert reconcile_spy.call_count == 1
    assert await count_rows(db_session, StockLevel) == 1
    assert (await fetch_stock(db_session, "TRT")).in_warehouse == 1


@pytest.mark.asyncio
async def test_existing_stock_level_skips_reconcile(db_session, processor, mocker):
    await add_catalog_product(db_session, "TRT")
    await StockReconciler(db_session, processor.cache).reconcile()
    reconcile_spy = mocker.spy(StockReconciler, "reconcile")

    await processor.record("TRT-0001", "PRODUCTION_SCAN", "Atelier")

    assert reconcile_spy.call_count == 0


@pytest.mark.asyncio
async def test_ensure_stock_level_gives_up_after_one_reconcile(db_session, processor, mocker):
    # A product the catalog does not know about can never be healed
    reconcile_spy = mocker.spy(StockReconciler, "reconcile")

    with pytest.raises(DependencyError):
        await processor.ensure_stock_level("GHOST")

    assert reconcile_spy.call_count == 1


@pytest.mark.asyncio
async def test_unmatched_serial_is_logged_but_kept(db_session, processor):
    await add_catalog_product(db_session, "TRT")

    await processor.record("XYZ-0001", "PRODUCTION_SCAN", "Atelier")

    assert await count_rows(db_session, ScanEvent) == 1
    assert await count_rows(db_session, StockLevel) == 0
    status = await db_session.get(UnitStatus, "XYZ-0001")
    assert status.status == "PRODUCTION SCAN"


@pytest.mark.asyncio
async def test_longest_prefix_product_is_updated(db_session, processor):
    await add_catalog_product(db_session, "CK")
    await add_catalog_product(db_session, "CK1")

    await processor.record("CK1-0001", "PRODUCTION_SCAN", "Atelier")

    assert (await fetch_stock(db_session, "CK1")).in_warehouse == 1
    assert (await fetch_stock(db_session, "CK")).in_warehouse == 0


@pytest.mark.asyncio
async def test_unit_status_is_upserted(db_session, processor):
    await processor.record("TRT-0001", "PRODUCTION_SCAN", "Atelier")
    await processor.record("TRT-0001", "SALEYA_STOCK_SCAN", "Cours Saleya")

    assert await count_rows(db_session, UnitStatus) == 1
    status = await db_session.get(UnitStatus, "TRT-0001")
    await db_session.refresh(status)
    assert status.status == "SALEYA STOCK SCAN"
    assert status.current_location == "Cours Saleya"


@pytest.mark.asyncio
@pytest.mark.parametrize("kwargs, field", [
    ({"serial_number": "", "event_type": "PRODUCTION_SCAN", "location": "Atelier"}, "serial_number"),
    ({"serial_number": "TRT-1", "event_type": None, "location": "Atelier"}, "event_type"),
    ({"serial_number": "TRT-1", "event_type": "PRODUCTION_SCAN", "location": "  "}, "location"),
])
async def test_missing_fields_are_rejected_before_any_write(db_session, processor, kwargs, field):
    with pytest.raises(ValidationError, match=field):
        await processor.record(**kwargs)

    assert await count_rows(db_session, ScanEvent) == 0
    assert await count_rows(db_session, UnitStatus) == 0


@pytest.mark.asyncio
async def test_unknown_event_type_is_rejected(db_session, processor):
    with pytest.raises(ValidationError, match="Unknown event type"):
        await processor.record("TRT-0001", "TELEPORT", "Atelier")

    assert await count_rows(db_session, ScanEvent) == 0


@pytest.mark.asyncio
async def test_unknown_event_type_recorded_when_allowed(db_session, cache, locks, settings):
    settings.ALLOW_UNKNOWN_SCAN_EVENTS = True
    processor = ScanEventProcessor(db_session, cache, locks, settings)
    await add_catalog_product(db_session, "TRT")

    result = await processor.record("TRT-0001", "quality_check", "Atelier")

    assert result.event_type == "QUALITY_CHECK"
    assert await count_rows(db_session, ScanEvent) == 1
    assert (await db_session.get(UnitStatus, "TRT-0001")).status == "QUALITY CHECK"
    # Counters untouched, and no stock row needed
    assert await count_rows(db_session, StockLevel) == 0


@pytest.mark.asyncio
async def test_record_invalidates_derived_views(db_session, processor):
    for key in CacheKey:
        processor.cache.put(key, ["cached"])

    await processor.record("TRT-0001", "PRODUCTION_SCAN", "Atelier")

    for key in SCAN_INVALIDATED_KEYS:
        assert processor.cache.get(key) is None
    assert processor.cache.get(CacheKey.PRODUCTS) == ["cached"]
    assert processor.cache.get(CacheKey.USERS) == ["cached"]


@pytest.mark.asyncio
async def test_failure_after_append_keeps_event(db_session, processor, mocker):
    await add_catalog_product(db_session, "TRT")
    mocker.patch.object(
        processor, "apply_to_stock",
        side_effect=DependencyError("row store unavailable"),
    )
    processor.cache.put(CacheKey.LOGS, ["stale"])

    result = await processor.record("TRT-0001", "PRODUCTION_SCAN", "Atelier")

    assert result.serial_number == "TRT-0001"
    assert await count_rows(db_session, ScanEvent) == 1
    assert (await fetch_stock(db_session, "TRT")).in_warehouse == 0
    assert processor.cache.get(CacheKey.LOGS) is None


@pytest.mark.asyncio
async def test_version_conflict_is_retried(db_session, processor, monkeypatch):
    await add_catalog_product(db_session, "TRT")
    await StockReconciler(db_session, processor.cache).reconcile()

    real_commit = db_session.commit
    calls = {"count": 0}

    async def flaky_commit():
        calls["count"] += 1
        if calls["count"] == 1:
            raise StaleDataError("stock_levels row changed underneath us")
        await real_commit()

    monkeypatch.setattr(db_session, "commit", flaky_commit)

    changes = await processor.apply_to_stock("TRT", ScanEventType.PRODUCTION_SCAN)

    assert changes == {"in_warehouse": 1}
    assert calls["count"] == 2
    assert (await fetch_stock(db_session, "TRT")).in_warehouse == 1


@pytest.mark.asyncio
async def test_version_conflict_gives_up_after_max_attempts(db_session, processor, monkeypatch):
    await add_catalog_product(db_session, "TRT")
    await StockReconciler(db_session, processor.cache).reconcile()

    async def always_stale():
        raise StaleDataError("conflict")

    monkeypatch.setattr(db_session, "commit", always_stale)

    with pytest.raises(DependencyError, match="after 3 attempts"):
        await processor.apply_to_stock("TRT", ScanEventType.PRODUCTION_SCAN)


@pytest.mark.asyncio
async def test_stock_version_increments_on_update(db_session, processor):
    await add_catalog_product(db_session, "TRT")

    await processor.record("TRT-0001", "PRODUCTION_SCAN", "Atelier")
    await processor.record("TRT-0002", "PRODUCTION_SCAN", "Atelier")

    record = await fetch_stock(db_session, "TRT")
    assert record.in_warehouse == 2
    assert record.version == 3


@pytest.mark.asyncio
async def test_deleted_product_scans_are_unmatched(db_session, processor):
    from cake_stock.services.product_service import ProductService

    await add_catalog_product(db_session, "TRT")
    await processor.record("TRT-0001", "PRODUCTION_SCAN", "Atelier")
    await ProductService(db_session, processor.cache).delete_product("TRT")

    await processor.record("TRT-0002", "PRODUCTION_SCAN", "Atelier")

    assert await count_rows(db_session, StockLevel) == 0
    events = (await db_session.execute(select(ScanEvent))).scalars().all()
    assert len(events) == 2


@pytest.mark.asyncio
async def test_unexpected_error_after_append_is_swallowed(db_session, processor, mocker, caplog):
    from cake_stock.services.unit_status_service import UnitStatusTracker

    await add_catalog_product(db_session, "TRT")
    mocker.patch.object(UnitStatusTracker, "upsert", side_effect=RuntimeError("status table gone"))

    result = await processor.record("TRT-0001", "PRODUCTION_SCAN", "Atelier")

    assert result.event_type == "PRODUCTION_SCAN"
    assert await count_rows(db_session, ScanEvent) == 1
    assert "status table gone" in caplog.text


@pytest.mark.asyncio
async def test_failed_reconcile_tolerated_when_row_appears(db_session, session_factory, processor, mocker):
    await add_catalog_product(db_session, "TRT")
    real_reconcile = StockReconciler.reconcile

    async def reconcile_elsewhere_then_fail():
        async with session_factory() as other:
            await real_reconcile(StockReconciler(other, processor.cache))
        raise DependencyError("UNIQUE constraint failed: stock_levels.product_id")

    mocker.patch.object(StockReconciler, "reconcile", side_effect=reconcile_elsewhere_then_fail)

    await processor.ensure_stock_level("TRT")

    assert await count_rows(db_session, StockLevel) == 1


# --- Concurrent writers ---

def _error_records(caplog):
    return [r for r in caplog.records if r.levelno >= logging.ERROR]


@pytest.mark.asyncio
async def test_concurrent_scans_on_one_product_are_all_counted(session_factory, db_session, cache, locks, settings, caplog):
    await add_catalog_product(db_session, "TRT")
    await StockReconciler(db_session, cache).reconcile()
    scans = 5

    async def scan(n):
        async with session_factory() as session:
            await ScanEventProcessor(session, cache, locks, settings).record(
                f"TRT-{n:04d}", "PRODUCTION_SCAN", "Atelier"
            )

    await asyncio.gather(*(scan(n) for n in range(scans)))

    assert (await fetch_stock(db_session, "TRT")).in_warehouse == scans
    assert await count_rows(db_session, ScanEvent) == scans
    assert _error_records(caplog) == []


@pytest.mark.asyncio
async def test_concurrent_scans_across_lock_registries_retry_version_conflicts(
    session_factory, db_session, cache, caplog
):
    # Separate registries behave like separate worker processes
    settings = Settings(DATABASE_URL="sqlite+aiosqlite://", STOCK_UPDATE_MAX_ATTEMPTS=6)
    await add_catalog_product(db_session, "TRT")
    await StockReconciler(db_session, cache).reconcile()
    scans = 4

    async def scan(n):
        async with session_factory() as session:
            processor = ScanEventProcessor(session, cache, ProductLockRegistry(), settings)
            await processor.record(f"TRT-{n:04d}", "PRODUCTION_SCAN", "Atelier")

    await asyncio.gather(*(scan(n) for n in range(scans)))

    record = await fetch_stock(db_session, "TRT")
    assert record.in_warehouse == scans
    assert record.version == scans + 1
    assert _error_records(caplog) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("shared_locks", [True, False])
async def test_concurrent_self_heal_creates_one_row(session_factory, db_session, cache, settings, caplog, shared_locks):
    await add_catalog_product(db_session, "TRT")
    shared = ProductLockRegistry()

    async def scan(serial_number):
        async with session_factory() as session:
            locks = shared if shared_locks else ProductLockRegistry()
            await ScanEventProcessor(session, cache, locks, settings).record(
                serial_number, "PRODUCTION_SCAN", "Atelier"
            )

    await asyncio.gather(scan("TRT-0001"), scan("TRT-0002"))

    assert await count_rows(db_session, StockLevel) == 1
    assert (await fetch_stock(db_session, "TRT")).in_warehouse == 2
    assert _error_records(caplog) == []
