# invoicing/exceptions.py
"""
Error taxonomy shared by the data access and business logic layers.

Callers (an API layer, a UI) catch InvoicingError subclasses and map them to
user-facing responses; messages are meant to be shown to the user.
"""
from typing import Any, Dict, Optional


class InvoicingError(Exception):
    """Base class for every error raised by the invoicing package."""


class ValidationError(InvoicingError, ValueError):
    """Input has the wrong shape or types. `errors` maps field name -> message."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors: Dict[str, str] = dict(errors or {})


class NotFoundError(InvoicingError, LookupError):
    def __init__(self, entity: str, entity_id: Any, message: Optional[str] = None):
        super().__init__(message or f"{entity} با شناسه {entity_id} یافت نشد.")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(InvoicingError):
    """A unique invoice number was taken by a concurrent writer."""


class InsufficientStockError(InvoicingError):
    def __init__(self, product_id: int, requested: int):
        super().__init__(f"موجودی کالا با شناسه {product_id} برای کسر {requested} عدد کافی نیست.")
        self.product_id = product_id
        self.requested = requested


class StorageError(InvoicingError):
    """The underlying database failed; the operation was rolled back."""
