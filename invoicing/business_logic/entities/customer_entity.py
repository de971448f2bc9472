# invoicing/business_logic/entities/customer_entity.py
from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime
from .base_entity import BaseEntity


@dataclass
class CustomerEntity(BaseEntity):
    first_name: str
    last_name: str
    address: Optional[str] = field(default=None)
    phone: Optional[str] = field(default=None)
    national_id: Optional[str] = field(default=None)
    notes: Optional[str] = field(default=None)
    created_at: Optional[datetime] = field(default=None)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
