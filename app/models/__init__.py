from app.models.user import User
from app.models.receipt import Receipt
from app.models.receipt_item import ReceiptItem

__all__ = [
    "User",
    "Receipt",
    "ReceiptItem",
]
