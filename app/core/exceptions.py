from typing import Optional, Dict, Any


class SpendSmartException(Exception):
    """Base exception for SpendSmart backend."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ReceiptSourceError(SpendSmartException):
    """Raised when a receipt source cannot read, decode or store receipts."""

    pass


class ResourceNotFoundError(SpendSmartException):
    """Raised when a requested resource is not found."""

    pass


class PermissionDeniedError(SpendSmartException):
    """Raised when user doesn't have permission for an action."""

    pass


class ReceiptConflictError(SpendSmartException):
    """Raised when a receipt id is already taken."""

    pass
