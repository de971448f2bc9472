# invoicing/business_logic/invoice_calculator.py
"""
Discount and total arithmetic of the invoice form.

Callers use calculate_totals() to fill in subtotal, discount_amount and total
before handing an invoice to InvoiceManager, which stores those values as given.
"""
from typing import Any, Dict, Iterable, Optional, Union
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from invoicing.constants import DiscountType, MONEY_QUANTUM
from invoicing.exceptions import ValidationError

import logging

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
OUT_OF_RANGE_MESSAGE = "مبلغ خارج از محدوده مجاز است."


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def parse_money(value: Any, field_name: str,
                errors: Optional[Dict[str, str]] = None,
                allow_negative: bool = False) -> Optional[Decimal]:
    """
    Converts int/float/str/Decimal to a Decimal rounded to two places.

    With an `errors` dict the problem is recorded under `field_name` and None is
    returned, so a caller can collect every field error before raising;
    without one a ValidationError is raised immediately.
    """
    message = None
    amount = None
    if value is None or isinstance(value, bool):
        message = "مقدار مبلغ نامعتبر است."
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            message = "مقدار مبلغ نامعتبر است."
        else:
            if not amount.is_finite():
                message = "مقدار مبلغ نامعتبر است."
            elif amount < 0 and not allow_negative:
                message = "مبلغ نمی‌تواند منفی باشد."
            else:
                try:
                    amount = _quantize(amount)
                except InvalidOperation:
                    message = OUT_OF_RANGE_MESSAGE

    if message is None:
        return amount
    if errors is None:
        raise ValidationError(message, {field_name: message})
    errors[field_name] = message
    return None


def calculate_item_total(quantity: int, price: Union[Decimal, int, str]) -> Decimal:
    return _quantize(Decimal(quantity) * Decimal(str(price)))


def calculate_discount_amount(subtotal: Decimal, discount_type: DiscountType,
                              discount_value: Union[Decimal, int, str]) -> Decimal:
    value = Decimal(str(discount_value))
    if discount_type == DiscountType.PERCENT:
        return _quantize(subtotal * value / Decimal(100))
    return _quantize(value)


def calculate_totals(items_data: Iterable[Dict[str, Any]],
                     discount_type: Union[DiscountType, str] = DiscountType.PERCENT,
                     discount_value: Union[Decimal, int, str] = ZERO) -> Dict[str, Decimal]:
    """
    Returns {'subtotal', 'discount_amount', 'total'} for a set of item dicts
    (each with 'quantity' and 'price').
    """
    try:
        discount_type = DiscountType(discount_type)
    except ValueError as e:
        raise ValidationError("نوع تخفیف نامعتبر است.", {"discount_type": "نوع تخفیف نامعتبر است."}) from e
    discount = parse_money(discount_value, "discount_value")

    subtotal = ZERO
    try:
        for index, item in enumerate(items_data):
            price = parse_money(item.get("price"), f"items[{index}].price")
            subtotal += calculate_item_total(item.get("quantity", 0), price)

        discount_amount = calculate_discount_amount(subtotal, discount_type, discount)
        total = _quantize(subtotal - discount_amount)
    except InvalidOperation as e:
        raise ValidationError(OUT_OF_RANGE_MESSAGE, {"subtotal": OUT_OF_RANGE_MESSAGE}) from e
    logger.debug(f"Calculated totals: subtotal={subtotal}, discount={discount_amount}, total={total}")
    return {"subtotal": subtotal, "discount_amount": discount_amount, "total": total}
