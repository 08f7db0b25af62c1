from fastapi import APIRouter, Depends

from cake_stock.dependencies import get_query_service, get_scan_processor
from cake_stock.schemas.responses import ApiResponse
from cake_stock.schemas.scan import ScanRequest
from cake_stock.services.inventory_query_service import InventoryQueryService
from cake_stock.services.scan_processor import ScanEventProcessor

router = APIRouter(prefix="/api", tags=["scans"])


@router.post("/scans", response_model=ApiResponse)
async def record_scan(
    payload: ScanRequest,
    processor: ScanEventProcessor = Depends(get_scan_processor),
):
    """Record one scan event and update stock levels"""
    result = await processor.record(
        serial_number=payload.serial_number,
        event_type=payload.event_type,
        location=payload.location,
        client_id=payload.client_id,
    )
    return ApiResponse.ok(result.model_dump(mode="json"))


@router.get("/logs", response_model=ApiResponse)
async def list_logs(queries: InventoryQueryService = Depends(get_query_service)):
    return ApiResponse.ok(await queries.list_logs())


@router.delete("/logs", response_model=ApiResponse)
async def clear_logs(queries: InventoryQueryService = Depends(get_query_service)):
    """Bulk-clear the event log and unit statuses"""
    result = await queries.clear_logs()
    return ApiResponse.ok(result.model_dump())


@router.get("/cake-status", response_model=ApiResponse)
async def get_cake_status(queries: InventoryQueryService = Depends(get_query_service)):
    return ApiResponse.ok(await queries.get_cake_status())


@router.get("/live-ops", response_model=ApiResponse)
async def get_live_operations(queries: InventoryQueryService = Depends(get_query_service)):
    return ApiResponse.ok(await queries.get_live_operations())
