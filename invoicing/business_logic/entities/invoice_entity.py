# invoicing/business_logic/entities/invoice_entity.py
from dataclasses import dataclass, field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from .base_entity import BaseEntity, RELATED
from .customer_entity import CustomerEntity
from .invoice_item_entity import InvoiceItemEntity
from invoicing.constants import InvoiceType, InvoiceStatus, DiscountType


@dataclass
class InvoiceEntity(BaseEntity):
    invoice_number: int
    customer_id: int
    type: InvoiceType
    subtotal: Decimal
    total: Decimal
    discount_type: DiscountType = field(default=DiscountType.PERCENT)
    discount_value: Decimal = field(default_factory=lambda: Decimal("0.00"))
    discount_amount: Decimal = field(default_factory=lambda: Decimal("0.00"))
    status: InvoiceStatus = field(default=InvoiceStatus.DRAFT)
    created_at: Optional[datetime] = field(default=None)
    updated_at: Optional[datetime] = field(default=None)

    # --- filled in on read (hydration) ---
    customer: Optional[CustomerEntity] = field(default=None, compare=False, repr=False, metadata=RELATED)
    items: List[InvoiceItemEntity] = field(default_factory=list, compare=False, repr=False, metadata=RELATED)

    @property
    def is_pre_invoice(self) -> bool:
        return self.type == InvoiceType.PRE_INVOICE
