from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.session import async_session_maker
from app.core.exceptions import PermissionDeniedError
from app.core.security import get_optional_user, FirebaseUser
from app.db.repositories.user_repo import UserRepository
from app.models.user import User
from app.services.dashboard_service import DashboardService
from app.services.local_storage_service import GUEST_ID_PATTERN
from app.services.receipt_sources import ReceiptSourceContext, get_receipt_source

settings = get_settings()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session dependency."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def _get_or_create_db_user(firebase_user: FirebaseUser, db: AsyncSession) -> User:
    user_repo = UserRepository(db)

    # Try to find existing user
    user = await user_repo.get_by_firebase_uid(firebase_user.uid)

    if user is None:
        # Create new user on first authentication.
        # Concurrent first requests can both try to INSERT; the loser re-reads.
        try:
            user = await user_repo.create(
                firebase_uid=firebase_user.uid,
                email=firebase_user.email,
                display_name=firebase_user.name,
            )
        except IntegrityError:
            await db.rollback()
            user = await user_repo.get_by_firebase_uid(firebase_user.uid)

    return user


async def get_source_context(
    x_guest_id: Optional[str] = Header(None, alias="X-Guest-Id"),
    firebase_user: Optional[FirebaseUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> ReceiptSourceContext:
    """
    Resolve whose receipts a request is about.

    A bearer token always wins and selects the database store. Without one,
    an X-Guest-Id header selects the guest's local store when guest mode is on.
    """
    if firebase_user is not None:
        user = await _get_or_create_db_user(firebase_user, db)
        return ReceiptSourceContext(user_id=user.id, use_local_storage=False)

    if x_guest_id is not None:
        if not settings.GUEST_MODE_ENABLED:
            raise PermissionDeniedError("Guest mode is disabled")
        if not GUEST_ID_PATTERN.match(x_guest_id):
            raise HTTPException(status_code=400, detail="Invalid X-Guest-Id header")
        return ReceiptSourceContext(user_id=x_guest_id, use_local_storage=True)

    raise HTTPException(
        status_code=401,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_dashboard_service(
    context: ReceiptSourceContext = Depends(get_source_context),
    db: AsyncSession = Depends(get_db),
) -> DashboardService:
    """Dashboard service wired to the caller's receipt source."""
    return DashboardService(get_receipt_source(context, db=db))
