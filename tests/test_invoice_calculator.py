"""Tests for the invoice form arithmetic."""

from decimal import Decimal

import pytest

from invoicing.business_logic.invoice_calculator import (
    calculate_item_total, calculate_totals, parse_money
)
from invoicing.constants import DiscountType
from invoicing.exceptions import ValidationError


ITEMS = [
    {"product_id": 1, "quantity": 2, "price": "100"},
    {"product_id": 2, "quantity": 3, "price": Decimal("33.33")},
]


def test_percent_discount():
    totals = calculate_totals(ITEMS, "percent", 10)

    assert totals == {
        "subtotal": Decimal("299.99"),
        "discount_amount": Decimal("30.00"),
        "total": Decimal("269.99"),
    }


def test_amount_discount():
    totals = calculate_totals(ITEMS, DiscountType.AMOUNT, "49.99")

    assert totals["discount_amount"] == Decimal("49.99")
    assert totals["total"] == Decimal("250.00")


def test_no_items_no_discount():
    assert calculate_totals([]) == {
        "subtotal": Decimal("0.00"),
        "discount_amount": Decimal("0.00"),
        "total": Decimal("0.00"),
    }


def test_unknown_discount_type():
    with pytest.raises(ValidationError) as exc_info:
        calculate_totals(ITEMS, "coupon", 5)

    assert "discount_type" in exc_info.value.errors


def test_item_total():
    assert calculate_item_total(3, "0.335") == Decimal("1.01")


class TestParseMoney:

    def test_rounds_to_two_places(self):
        assert parse_money(12.345, "price") == Decimal("12.35")
        assert parse_money("7", "price") == Decimal("7.00")

    @pytest.mark.parametrize("value", [None, "abc", True, "NaN", "-0.01"])
    def test_rejects(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_money(value, "price")

        assert "price" in exc_info.value.errors

    def test_collects_errors(self):
        errors = {}

        assert parse_money("x", "total", errors) is None
        assert "total" in errors

    def test_negative_allowed_when_asked(self):
        assert parse_money("-5", "total", allow_negative=True) == Decimal("-5.00")

    def test_out_of_range_amount_is_a_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_money("1e30", "price")

        assert "price" in exc_info.value.errors


def test_totals_out_of_range():
    items = [{"product_id": 1, "quantity": 10 ** 6, "price": "1e25"}]

    with pytest.raises(ValidationError) as exc_info:
        calculate_totals(items)

    assert "subtotal" in exc_info.value.errors
