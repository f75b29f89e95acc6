"""Tests for DashboardService: fail-soft loading and cache invalidation."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core import cache
from app.core.exceptions import ReceiptSourceError
from app.db.base import Base
from app.models.user import User
from app.schemas.receipt import ReceiptCreate
from app.services.dashboard_service import DashboardService, cache_owner
from app.services.local_storage_service import LocalStorageService
from app.services.receipt_sources import (
    DatabaseReceiptSource,
    LocalReceiptSource,
    ReceiptSourceContext,
)


NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
CONTEXT = ReceiptSourceContext(user_id="user-1")


@pytest.mark.asyncio
async def test_source_failure_degrades_to_empty_dashboard():
    source = AsyncMock()
    source.fetch_all.side_effect = ReceiptSourceError(
        "boom", details={"error_type": "database"}
    )
    service = DashboardService(source)

    dashboard = await service.get_dashboard(CONTEXT, now=NOW)

    assert dashboard.source_available is False
    assert dashboard.summary.receipt_count == 0
    assert dashboard.categories == []
    assert dashboard.insights == []
    assert len(dashboard.monthly) == 8
    assert all(m.total == 0 for m in dashboard.monthly)


@pytest.mark.asyncio
async def test_failed_load_is_not_cached(make_receipt):
    receipt = make_receipt(purchase_date=NOW, total_amount=9.0)
    source = AsyncMock()
    source.fetch_all.side_effect = [ReceiptSourceError("boom"), [receipt]]
    service = DashboardService(source)

    first = await service.get_dashboard(CONTEXT, now=NOW)
    second = await service.get_dashboard(CONTEXT, now=NOW)

    assert first.source_available is False
    assert second.source_available is True
    assert second.summary.total_expense == 9.0
    assert source.fetch_all.await_count == 2


@pytest.mark.asyncio
async def test_dashboard_is_cached_per_owner_and_month(make_receipt):
    source = AsyncMock()
    source.fetch_all.return_value = [make_receipt(purchase_date=NOW, total_amount=4.0)]
    service = DashboardService(source)

    await service.get_dashboard(CONTEXT, now=NOW)
    await service.get_dashboard(CONTEXT, now=NOW)
    assert source.fetch_all.await_count == 1

    await service.get_dashboard(ReceiptSourceContext(user_id="user-1", use_local_storage=True), now=NOW)
    assert source.fetch_all.await_count == 2

    await service.get_dashboard(CONTEXT, now=datetime(2026, 11, 1, tzinfo=timezone.utc))
    assert source.fetch_all.await_count == 3
    assert cache.get_cache_stats()["hits"] == 1


@pytest.mark.asyncio
async def test_add_receipt_invalidates_cached_dashboard(tmp_path):
    context = ReceiptSourceContext(user_id="guest-9", use_local_storage=True)
    service = DashboardService(LocalReceiptSource(LocalStorageService(base_dir=tmp_path)))

    empty = await service.get_dashboard(context, now=NOW)
    assert empty.summary.receipt_count == 0
    assert empty.insights == []

    await service.add_receipt(
        context,
        ReceiptCreate(
            store_name="Safeway",
            purchase_date=NOW,
            total_amount=50,
            total_tax=5,
            savings=10,
            items=[{"category": "Food", "price": 45}],
        ),
    )

    refreshed = await service.get_dashboard(context, now=NOW)
    assert refreshed.summary.receipt_count == 1
    assert {c.category: c.total for c in refreshed.categories} == {"Food": 45, "Tax": 5}
    assert refreshed.monthly[-1].total == 50
    assert [i.title for i in refreshed.insights] == ["Savings Found", "Top Spending Category"]


def test_cache_owner_separates_guests_from_users():
    assert cache_owner(ReceiptSourceContext(user_id="abc")) == "user-abc"
    assert cache_owner(ReceiptSourceContext(user_id="abc", use_local_storage=True)) == "guest-abc"


def test_configured_window_length(make_receipt):
    service = DashboardService(AsyncMock(), months=3)

    dashboard = service.build_dashboard([make_receipt(purchase_date=NOW)], NOW)

    assert [m.month for m in dashboard.monthly] == ["Aug", "Sep", "Oct"]


@pytest.mark.asyncio
async def test_cache_hit_reports_serving_time(make_receipt):
    source = AsyncMock()
    source.fetch_all.return_value = [make_receipt(purchase_date=NOW)]
    service = DashboardService(source)
    later = datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)

    first = await service.get_dashboard(CONTEXT, now=NOW)
    second = await service.get_dashboard(CONTEXT, now=later)

    assert source.fetch_all.await_count == 1
    assert first.generated_at == NOW
    assert second.generated_at == later
    assert second.summary == first.summary


@pytest_asyncio.fixture
async def file_session_maker(tmp_path):
    """Sessions on a file-backed SQLite database, each with its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'spendsmart.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.mark.asyncio
async def test_added_receipt_is_visible_to_other_sessions(file_session_maker):
    user_id = str(uuid.uuid4())
    async with file_session_maker() as session:
        session.add(User(id=user_id, firebase_uid="writer_uid"))
        await session.commit()
    context = ReceiptSourceContext(user_id=user_id)

    async with file_session_maker() as reader:
        before = await DashboardService(DatabaseReceiptSource(reader)).get_dashboard(context, now=NOW)
    assert before.summary.receipt_count == 0

    async with file_session_maker() as writer:
        await DashboardService(DatabaseReceiptSource(writer)).add_receipt(
            context,
            ReceiptCreate(
                store_name="Safeway",
                purchase_date=NOW,
                total_amount=12,
                items=[{"category": "Food", "price": 12}],
            ),
        )

        # The writer session is still open and the request has not finished
        async with file_session_maker() as reader:
            during = await DashboardService(DatabaseReceiptSource(reader)).get_dashboard(
                context, now=NOW
            )
        assert during.summary.receipt_count == 1

    async with file_session_maker() as reader:
        after = await DashboardService(DatabaseReceiptSource(reader)).get_dashboard(context, now=NOW)
    assert after.summary.receipt_count == 1
