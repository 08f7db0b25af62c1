from fastapi import APIRouter, Depends

from cake_stock.dependencies import get_sales_aggregator
from cake_stock.schemas.responses import ApiResponse
from cake_stock.services.sales_aggregator import SalesAggregator

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("/weekly", response_model=ApiResponse)
async def generate_weekly_report(aggregator: SalesAggregator = Depends(get_sales_aggregator)):
    """Aggregate the last week of sales and store the report"""
    report = await aggregator.generate_weekly_report()
    return ApiResponse.ok(report.model_dump(mode="json"))


@router.get("/weekly", response_model=ApiResponse)
async def get_weekly_report(aggregator: SalesAggregator = Depends(get_sales_aggregator)):
    return ApiResponse.ok(await aggregator.get_weekly_report())
