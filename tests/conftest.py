from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.config import get_settings
from app.core import cache
from app.core.security import FirebaseUser, get_optional_user
from app.db.base import Base
from app.api.deps import get_db
from app.models.user import User
from app.models.receipt import Receipt
from app.models.receipt_item import ReceiptItem
from app.schemas.receipt import LineItem, Receipt as ReceiptSnapshot


# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_FIREBASE_UID = "test_firebase_uid"


@pytest.fixture(autouse=True)
def clear_dashboard_cache():
    """Each test starts with an empty dashboard cache."""
    cache.clear_all()
    yield
    cache.clear_all()


@pytest.fixture
def local_storage_dir(tmp_path, monkeypatch):
    """Point the guest store at a temporary directory."""
    monkeypatch.setattr(get_settings(), "LOCAL_STORAGE_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def make_receipt():
    """Build immutable receipt snapshots for engine tests."""

    def _make(
        store_name: str = "Costco",
        purchase_date: datetime | None = None,
        total_amount: float = 0.0,
        total_tax: float = 0.0,
        savings: float = 0.0,
        items: list[dict] | None = None,
    ) -> ReceiptSnapshot:
        return ReceiptSnapshot(
            id=str(uuid.uuid4()),
            store_name=store_name,
            purchase_date=purchase_date or datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc),
            total_amount=total_amount,
            total_tax=total_tax,
            savings=savings,
            items=[LineItem(**item) for item in items or []],
        )

    return _make


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_user(test_session: AsyncSession) -> User:
    """Create a test user."""
    user = User(
        id=str(uuid.uuid4()),
        firebase_uid=TEST_FIREBASE_UID,
        email="test@example.com",
        display_name="Test User",
        is_active=True,
    )
    test_session.add(user)
    await test_session.commit()
    await test_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_receipts(test_session: AsyncSession, test_user: User) -> list[Receipt]:
    """Create test receipts for the user, all within the current month or the previous one."""
    now = datetime.now(timezone.utc)
    receipts_data = [
        {
            "store_name": "Costco",
            "purchase_date": now - timedelta(hours=2),
            "total_amount": 50.00,
            "total_tax": 5.00,
            "savings": 10.00,
            "items": [
                {"name": "Apples", "category": "Groceries", "price": 20.00},
                {"name": "Bread", "category": "Groceries", "price": 25.00},
                {"name": "Member discount", "category": "Groceries", "price": -10.00,
                 "is_discount": True, "discount_description": "Member savings"},
            ],
        },
        {
            "store_name": "Costco",
            "purchase_date": now - timedelta(hours=1),
            "total_amount": 33.00,
            "total_tax": 3.00,
            "savings": 0.0,
            "items": [
                {"name": "T-shirt", "category": "Clothing", "price": 30.00},
                {"name": "Reward", "category": "Clothing", "price": 0.0,
                 "discount_description": "500 Points redeemed"},
            ],
        },
        {
            "store_name": "Shell",
            "purchase_date": now - timedelta(minutes=30),
            "total_amount": 40.00,
            "total_tax": 0.0,
            "savings": 0.0,
            "items": [
                {"name": "Fuel", "category": "Transport", "price": 40.00},
            ],
        },
    ]

    receipts = []
    for data in receipts_data:
        items = [
            ReceiptItem(id=str(uuid.uuid4()), position=i, **item)
            for i, item in enumerate(data.pop("items"))
        ]
        r = Receipt(id=str(uuid.uuid4()), user_id=test_user.id, items=items, **data)
        test_session.add(r)
        receipts.append(r)

    await test_session.commit()
    return receipts


@pytest_asyncio.fixture(scope="function")
async def client(
    test_session: AsyncSession,
    test_user: User,
    test_receipts: list[Receipt],
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client for a signed-in user with mocked dependencies."""

    async def override_get_db():
        yield test_session

    async def override_get_optional_user():
        return FirebaseUser(uid=TEST_FIREBASE_UID, email=test_user.email, name=test_user.display_name)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_optional_user] = override_get_optional_user

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def guest_client(
    test_session: AsyncSession,
    local_storage_dir,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client without a token; requests identify as a guest."""

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Guest-Id": "guest-123"},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
