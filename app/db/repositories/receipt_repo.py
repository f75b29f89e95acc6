from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.receipt import Receipt
from app.models.receipt_item import ReceiptItem
from app.schemas.receipt import ReceiptCreate


class ReceiptRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, receipt_id: str) -> Optional[Receipt]:
        """Get receipt by ID, with its items."""
        result = await self.db.execute(
            select(Receipt)
            .options(selectinload(Receipt.items))
            .where(Receipt.id == receipt_id)
        )
        return result.scalar_one_or_none()

    async def get_by_id_and_user(
        self, receipt_id: str, user_id: str
    ) -> Optional[Receipt]:
        """Get receipt by ID and user ID."""
        result = await self.db.execute(
            select(Receipt)
            .options(selectinload(Receipt.items))
            .where(
                Receipt.id == receipt_id,
                Receipt.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_all_by_user(self, user_id: str) -> List[Receipt]:
        """Get every receipt of a user with items loaded, newest purchase first."""
        result = await self.db.execute(
            select(Receipt)
            .options(selectinload(Receipt.items))
            .where(Receipt.user_id == user_id)
            .order_by(Receipt.purchase_date.desc(), Receipt.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(self, user_id: str, data: ReceiptCreate) -> Receipt:
        """Create a receipt and its line items."""
        receipt = Receipt(
            user_id=user_id,
            store_name=data.store_name,
            purchase_date=data.purchase_date,
            total_amount=data.total_amount,
            total_tax=data.total_tax,
            savings=data.savings,
            items=[
                ReceiptItem(
                    position=position,
                    name=item.name,
                    category=item.category,
                    price=item.price,
                    is_discount=item.is_discount,
                    discount_description=item.discount_description,
                )
                for position, item in enumerate(data.items)
            ],
        )
        if data.id:
            receipt.id = data.id
        self.db.add(receipt)
        await self.db.flush()
        return await self.get_by_id(receipt.id)

