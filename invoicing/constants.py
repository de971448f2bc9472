# invoicing/constants.py

from enum import Enum
from decimal import Decimal

# General
DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"  # fixed width, so text order is time order
MONEY_QUANTUM = Decimal("0.01")


class InvoiceType(Enum):
    INVOICE = "invoice"
    PRE_INVOICE = "pre-invoice"


class InvoiceStatus(Enum):
    DRAFT = "draft"
    FINAL = "final"


class DiscountType(Enum):
    PERCENT = "percent"
    AMOUNT = "amount"


# Status an invoice receives when it is created with a given type
STATUS_FOR_TYPE = {
    InvoiceType.INVOICE: InvoiceStatus.FINAL,
    InvoiceType.PRE_INVOICE: InvoiceStatus.DRAFT,
}

# Largest value an SQLite INTEGER column holds
SQLITE_MAX_INTEGER = 2**63 - 1
