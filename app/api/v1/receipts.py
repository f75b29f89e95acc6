import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_dashboard_service, get_source_context
from app.core.exceptions import ResourceNotFoundError
from app.schemas.receipt import Receipt, ReceiptCreate, ReceiptListResponse
from app.services.dashboard_service import DashboardService
from app.services.receipt_sources import ReceiptSourceContext

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ReceiptListResponse)
async def list_receipts(
    context: ReceiptSourceContext = Depends(get_source_context),
    service: DashboardService = Depends(get_dashboard_service),
):
    """
    List the caller's receipts, newest purchase first.

    Signed-in users read from the database; guests read their local store.
    """
    receipts = await service.source.fetch_all(context)
    return ReceiptListResponse(receipts=receipts, total=len(receipts))


@router.get("/{receipt_id}", response_model=Receipt)
async def get_receipt(
    receipt_id: str,
    context: ReceiptSourceContext = Depends(get_source_context),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Get a specific receipt by ID."""
    receipt = await service.source.get(context, receipt_id)
    if receipt is not None:
        return receipt

    raise ResourceNotFoundError(f"Receipt {receipt_id} not found")


@router.post("", response_model=Receipt, status_code=201)
async def create_receipt(
    data: ReceiptCreate,
    context: ReceiptSourceContext = Depends(get_source_context),
    service: DashboardService = Depends(get_dashboard_service),
):
    """
    Add a receipt for the caller.

    The receipt is stored in the caller's source and the cached dashboard
    is invalidated so the next dashboard request reflects it.
    """
    logger.info(
        f"Receipt create: user_id={context.user_id}, guest={context.use_local_storage}, "
        f"store_name={data.store_name}, items={len(data.items)}"
    )
    return await service.add_receipt(context, data)
