import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_dashboard_service, get_source_context
from app.schemas.dashboard import (
    DashboardResponse,
    CategoryCostsResponse,
    MonthlyTotalsResponse,
    InsightsResponse,
)
from app.services.dashboard_service import DashboardService
from app.services.receipt_sources import ReceiptSourceContext

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    context: ReceiptSourceContext = Depends(get_source_context),
    service: DashboardService = Depends(get_dashboard_service),
):
    """
    Get the full spending dashboard.

    Includes the spending summary, category totals (with tax as its own
    category), totals for the trailing months and the insight cards.
    If receipts cannot be loaded the dashboard is empty and
    `source_available` is false.
    """
    return await service.get_dashboard(context)


@router.get("/categories", response_model=CategoryCostsResponse)
async def get_category_costs(
    context: ReceiptSourceContext = Depends(get_source_context),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Spending per category, largest first."""
    dashboard = await service.get_dashboard(context)
    return CategoryCostsResponse(categories=dashboard.categories)


@router.get("/monthly", response_model=MonthlyTotalsResponse)
async def get_monthly_totals(
    context: ReceiptSourceContext = Depends(get_source_context),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Amount actually spent per month, oldest month first."""
    dashboard = await service.get_dashboard(context)
    return MonthlyTotalsResponse(months=dashboard.monthly)


@router.get("/insights", response_model=InsightsResponse)
async def get_insights(
    context: ReceiptSourceContext = Depends(get_source_context),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Insight cards in display order."""
    dashboard = await service.get_dashboard(context)
    return InsightsResponse(insights=dashboard.insights)
