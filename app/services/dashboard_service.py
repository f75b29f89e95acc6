import logging
from datetime import datetime, timezone
from typing import List, Optional

from app.config import get_settings
from app.core.cache import build_cache_key, get_cached, invalidate_user, set_cached
from app.core.exceptions import ReceiptSourceError
from app.schemas.dashboard import DashboardResponse
from app.schemas.receipt import Receipt, ReceiptCreate
from app.services import aggregation
from app.services.receipt_sources import ReceiptSource, ReceiptSourceContext

logger = logging.getLogger(__name__)


def cache_owner(context: ReceiptSourceContext) -> str:
    prefix = "guest" if context.use_local_storage else "user"
    return f"{prefix}-{context.user_id}"


class DashboardService:
    """Loads a receipt snapshot from a source and derives the dashboard views."""

    def __init__(self, source: ReceiptSource, months: Optional[int] = None):
        self.source = source
        self.months = months or get_settings().DASHBOARD_MONTHS

    async def load_snapshot(self, context: ReceiptSourceContext) -> tuple[List[Receipt], bool]:
        """Fetch the caller's receipts.

        Source failures are logged and degrade to an empty snapshot; the
        second element tells whether the source answered.
        """
        try:
            return await self.source.fetch_all(context), True
        except ReceiptSourceError as e:
            logger.error(
                f"Error fetching receipts: user_id={context.user_id}, "
                f"guest={context.use_local_storage}, error={e.message}, details={e.details}"
            )
            return [], False

    def build_dashboard(
        self,
        receipts: List[Receipt],
        now: datetime,
        source_available: bool = True,
    ) -> DashboardResponse:
        return DashboardResponse(
            generated_at=now,
            source_available=source_available,
            summary=aggregation.spending_summary(receipts),
            categories=aggregation.sorted_category_costs(receipts),
            monthly=aggregation.monthly_totals(receipts, now, months=self.months),
            insights=aggregation.insights(receipts),
        )

    async def get_dashboard(
        self,
        context: ReceiptSourceContext,
        now: Optional[datetime] = None,
    ) -> DashboardResponse:
        """Dashboard for the caller, cached per owner and calendar month."""
        now = now or datetime.now(timezone.utc)
        key = build_cache_key("dashboard", cache_owner(context), month=now.strftime("%Y-%m"))

        cached = get_cached(key)
        if cached is not None:
            return cached.model_copy(update={"generated_at": now})

        receipts, source_available = await self.load_snapshot(context)
        dashboard = self.build_dashboard(receipts, now, source_available)

        logger.info(
            f"Dashboard built: user_id={context.user_id}, receipts={len(receipts)}, "
            f"source_available={source_available}"
        )

        # Failed loads are not cached so the next request retries the source
        if source_available:
            set_cached(key, dashboard)
        return dashboard

    async def add_receipt(
        self, context: ReceiptSourceContext, data: ReceiptCreate
    ) -> Receipt:
        """Persist a receipt through the source and drop the stale dashboard.

        The source has committed by the time it returns, so a dashboard built
        after the invalidation sees the new receipt.
        """
        receipt = await self.source.add(context, data)
        invalidate_user(cache_owner(context))
        return receipt
