# invoicing/business_logic/entities/invoice_item_entity.py
from dataclasses import dataclass, field
from typing import Optional
from decimal import Decimal
from .base_entity import BaseEntity, RELATED
from .product_entity import ProductEntity


@dataclass
class InvoiceItemEntity(BaseEntity):
    product_id: int
    quantity: int
    price: Decimal  # unit price at the time of sale, not linked to the product's current price
    total: Decimal = field(default_factory=lambda: Decimal("0.00"))
    invoice_id: Optional[int] = None

    # --- filled in on read ---
    product: Optional[ProductEntity] = field(default=None, compare=False, repr=False, metadata=RELATED)
