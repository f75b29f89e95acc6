from datetime import datetime, timezone
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Timestamps travel as UTC without an offset, e.g. 2026-03-14T18:05:00
WIRE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


class LineItem(BaseModel):
    """One product, charge or discount line on a receipt."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    name: Optional[str] = None
    category: str
    price: float
    is_discount: bool = False
    discount_description: Optional[str] = None  # e.g. "10 points redeemed"


class ReceiptBase(BaseModel):
    store_name: str
    purchase_date: datetime
    total_amount: float  # Amount actually paid, after discounts
    total_tax: float = 0.0
    savings: float = Field(default=0.0, ge=0)
    items: List[LineItem] = []

    @field_validator("purchase_date")
    @classmethod
    def normalize_purchase_date(cls, v: datetime) -> datetime:
        """Read naive timestamps as UTC and convert aware ones to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_serializer("purchase_date")
    def serialize_purchase_date(self, v: datetime) -> str:
        return v.astimezone(timezone.utc).strftime(WIRE_DATE_FORMAT)


class ReceiptCreate(ReceiptBase):
    id: Optional[str] = None  # Client-generated id, assigned by the store when omitted


class Receipt(ReceiptBase):
    """Immutable receipt as handed to the aggregation engine."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str


class ReceiptListResponse(BaseModel):
    receipts: List[Receipt]
    total: int
