from fastapi import APIRouter, Depends

from cake_stock.dependencies import get_product_service
from cake_stock.schemas.product import ProductCreate
from cake_stock.schemas.responses import ApiResponse
from cake_stock.services.product_service import ProductService

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=ApiResponse)
async def list_products(service: ProductService = Depends(get_product_service)):
    return ApiResponse.ok(await service.list_products())


@router.get("/{product_id}", response_model=ApiResponse)
async def get_product(product_id: str, service: ProductService = Depends(get_product_service)):
    product = await service.get_product(product_id)
    return ApiResponse.ok(product.model_dump(mode="json"))


@router.post("", response_model=ApiResponse)
async def add_product(
    product_data: ProductCreate,
    service: ProductService = Depends(get_product_service),
):
    """Add a catalog product; its stock-level row is created immediately"""
    product = await service.add_product(product_data)
    return ApiResponse.ok(product.model_dump(mode="json"))


@router.delete("/{product_id}", response_model=ApiResponse)
async def delete_product(product_id: str, service: ProductService = Depends(get_product_service)):
    return ApiResponse.ok(await service.delete_product(product_id))
