# invoicing/business_logic/entities/product_entity.py
from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from .base_entity import BaseEntity
from invoicing.config import LOW_STOCK_THRESHOLD


@dataclass
class ProductEntity(BaseEntity):
    name: str
    sale_price: Decimal
    quantity: int = field(default=0)  # may be negative after an oversell
    purchase_price: Optional[Decimal] = field(default=None)
    description: Optional[str] = field(default=None)
    created_at: Optional[datetime] = field(default=None)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity < LOW_STOCK_THRESHOLD
