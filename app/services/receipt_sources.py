"""Where a caller's receipts live: the database for signed-in users, local files for guests."""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ReceiptConflictError, ReceiptSourceError
from app.db.repositories.receipt_repo import ReceiptRepository
from app.schemas.receipt import Receipt, ReceiptCreate
from app.services.local_storage_service import LocalStorageService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptSourceContext:
    """Identity of the caller whose receipts are requested.

    user_id is the database user id, or the guest id when use_local_storage is set.
    """
    user_id: str
    use_local_storage: bool = False


class ReceiptSource(Protocol):
    async def fetch_all(self, context: ReceiptSourceContext) -> List[Receipt]:
        ...

    async def get(self, context: ReceiptSourceContext, receipt_id: str) -> Optional[Receipt]:
        ...

    async def add(self, context: ReceiptSourceContext, data: ReceiptCreate) -> Receipt:
        ...


class DatabaseReceiptSource:
    """Receipts stored in the backend database, keyed by user id."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = ReceiptRepository(db)

    async def fetch_all(self, context: ReceiptSourceContext) -> List[Receipt]:
        try:
            rows = await self.repo.get_all_by_user(context.user_id)
            return [Receipt.model_validate(row) for row in rows]
        except ValidationError as e:
            raise ReceiptSourceError(
                "Could not decode stored receipts",
                details={"error_type": "decoding", "error": str(e)},
            ) from e
        except SQLAlchemyError as e:
            raise ReceiptSourceError(
                "Could not load receipts from the database",
                details={"error_type": "database", "error": str(e)},
            ) from e

    async def get(self, context: ReceiptSourceContext, receipt_id: str) -> Optional[Receipt]:
        try:
            row = await self.repo.get_by_id_and_user(receipt_id, context.user_id)
            return Receipt.model_validate(row) if row is not None else None
        except ValidationError as e:
            raise ReceiptSourceError(
                "Could not decode stored receipt",
                details={"error_type": "decoding", "error": str(e)},
            ) from e
        except SQLAlchemyError as e:
            raise ReceiptSourceError(
                "Could not load receipt from the database",
                details={"error_type": "database", "error": str(e)},
            ) from e

    async def add(self, context: ReceiptSourceContext, data: ReceiptCreate) -> Receipt:
        """Insert and commit, so other sessions see the receipt once this returns."""
        try:
            if data.id and await self.repo.get_by_id(data.id) is not None:
                raise ReceiptConflictError(
                    f"Receipt {data.id} already exists", details={"receipt_id": data.id}
                )
            row = await self.repo.create(user_id=context.user_id, data=data)
            receipt = Receipt.model_validate(row)
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same id
            await self.db.rollback()
            raise ReceiptConflictError(
                f"Receipt {data.id} already exists", details={"receipt_id": data.id}
            ) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ReceiptSourceError(
                "Could not save receipt to the database",
                details={"error_type": "database", "error": str(e)},
            ) from e
        logger.info(f"Receipt inserted: user_id={context.user_id}, receipt_id={receipt.id}")
        return receipt


class LocalReceiptSource:
    """Guest receipts kept in the on-disk store; file I/O runs in a worker thread."""

    def __init__(self, storage: Optional[LocalStorageService] = None):
        self.storage = storage or LocalStorageService()

    async def fetch_all(self, context: ReceiptSourceContext) -> List[Receipt]:
        receipts = await asyncio.to_thread(self.storage.get_receipts, context.user_id)
        return sorted(receipts, key=lambda r: r.purchase_date, reverse=True)

    async def get(self, context: ReceiptSourceContext, receipt_id: str) -> Optional[Receipt]:
        receipts = await asyncio.to_thread(self.storage.get_receipts, context.user_id)
        return next((r for r in receipts if r.id == receipt_id), None)

    async def add(self, context: ReceiptSourceContext, data: ReceiptCreate) -> Receipt:
        return await asyncio.to_thread(self.storage.add_receipt, context.user_id, data)


def get_receipt_source(
    context: ReceiptSourceContext,
    db: Optional[AsyncSession] = None,
    storage: Optional[LocalStorageService] = None,
) -> ReceiptSource:
    """Pick the local store for guests and the database for everyone else."""
    if context.use_local_storage:
        return LocalReceiptSource(storage)
    if db is None:
        raise ValueError("A database session is required for signed-in users")
    return DatabaseReceiptSource(db)
