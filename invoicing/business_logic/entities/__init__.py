# invoicing/business_logic/entities/__init__.py
from .base_entity import BaseEntity
from .customer_entity import CustomerEntity
from .product_entity import ProductEntity
from .invoice_item_entity import InvoiceItemEntity
from .invoice_entity import InvoiceEntity

__all__ = [
    "BaseEntity", "CustomerEntity", "ProductEntity",
    "InvoiceItemEntity", "InvoiceEntity",
]
