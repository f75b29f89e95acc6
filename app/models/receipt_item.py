import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Integer, Float, ForeignKey, Text, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.receipt import Receipt


class ReceiptItem(Base):
    __tablename__ = "receipt_items"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    receipt_id: Mapped[str] = mapped_column(
        String, ForeignKey("receipts.id", ondelete="CASCADE"), nullable=False
    )
    # Order of the line on the receipt
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    category: Mapped[str] = mapped_column(String, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)

    # Discount lines and points redemptions
    is_discount: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    discount_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    receipt: Mapped["Receipt"] = relationship("Receipt", back_populates="items")

    __table_args__ = (
        Index("ix_receipt_items_receipt_position", "receipt_id", "position"),
    )
