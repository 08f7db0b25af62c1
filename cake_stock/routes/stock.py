from fastapi import APIRouter, Depends

from cake_stock.dependencies import get_query_service, get_reconciler
from cake_stock.schemas.responses import ApiResponse
from cake_stock.services.inventory_query_service import InventoryQueryService
from cake_stock.services.stock_reconciler import StockReconciler

router = APIRouter(prefix="/api", tags=["stock"])


@router.get("/summary", response_model=ApiResponse)
async def get_summary(queries: InventoryQueryService = Depends(get_query_service)):
    return ApiResponse.ok(await queries.get_summary())


@router.post("/reconcile", response_model=ApiResponse)
async def force_reconcile(reconciler: StockReconciler = Depends(get_reconciler)):
    """Create any missing stock-level rows"""
    result = await reconciler.reconcile()
    return ApiResponse.ok(result.model_dump())
