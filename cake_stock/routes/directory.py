from fastapi import APIRouter, Depends

from cake_stock.dependencies import get_query_service
from cake_stock.schemas.responses import ApiResponse
from cake_stock.services.inventory_query_service import InventoryQueryService

router = APIRouter(prefix="/api", tags=["directory"])


@router.get("/users", response_model=ApiResponse)
async def list_users(queries: InventoryQueryService = Depends(get_query_service)):
    return ApiResponse.ok(await queries.list_users())


@router.get("/b2b-clients", response_model=ApiResponse)
async def list_b2b_clients(queries: InventoryQueryService = Depends(get_query_service)):
    return ApiResponse.ok(await queries.list_b2b_clients())
