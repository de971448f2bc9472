"""Tests for the sales report."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from invoicing.exceptions import NotFoundError, ValidationError


def line(product, quantity):
    return {"product_id": product.id, "quantity": quantity, "price": product.sale_price}


@pytest.fixture
def second_customer(app):
    return app.customer_manager.create_customer("Reza", "Karimi")


class TestSalesReport:

    def test_totals_skip_pre_invoices(self, app, customer, second_customer, product, make_invoice):
        make_invoice(app, customer.id, [line(product, 1)])                                      # 100
        make_invoice(app, customer.id, [line(product, 2)], discount_type="amount", discount_value=50)  # 150
        make_invoice(app, second_customer.id, [line(product, 1)])                               # 100
        make_invoice(app, second_customer.id, [line(product, 5)], invoice_type="pre-invoice")

        report = app.report_manager.get_sales_report()

        assert report["total_sales"] == Decimal("350.00")
        assert report["total_invoices"] == 3
        assert report["total_pre_invoices"] == 1
        assert report["average_invoice"] == Decimal("116.67")

    def test_customer_purchases_biggest_buyer_first(self, app, customer, second_customer, product, make_invoice):
        idle = app.customer_manager.create_customer("Ali", "Moradi")
        make_invoice(app, customer.id, [line(product, 1)])
        make_invoice(app, second_customer.id, [line(product, 3)])
        make_invoice(app, second_customer.id, [line(product, 1)])

        rows = app.report_manager.get_sales_report()["customer_purchases"]

        assert [(r["customer"].id, r["invoice_count"], r["total_purchases"]) for r in rows] == [
            (second_customer.id, 2, Decimal("400.00")),
            (customer.id, 1, Decimal("100.00")),
            (idle.id, 0, Decimal("0.00")),
        ]

    def test_date_range_is_inclusive(self, app, clock, customer, product, make_invoice):
        for day in (1, 2, 3):
            clock.set(datetime(2024, 5, day, 10, 0))
            make_invoice(app, customer.id, [line(product, day)])

        report = app.report_manager.get_sales_report(start_date="2024-05-02", end_date=date(2024, 5, 3))

        assert report["total_invoices"] == 2
        assert report["total_sales"] == Decimal("500.00")

    def test_filter_by_customer(self, app, customer, second_customer, product, make_invoice):
        make_invoice(app, customer.id, [line(product, 1)])
        make_invoice(app, second_customer.id, [line(product, 2)])

        report = app.report_manager.get_sales_report(customer_id=second_customer.id)

        assert report["total_sales"] == Decimal("200.00")
        assert [r["customer"].id for r in report["customer_purchases"]] == [second_customer.id]

    def test_empty_range(self, app, customer):
        report = app.report_manager.get_sales_report(start_date="2030-01-01")

        assert report["total_sales"] == Decimal("0.00")
        assert report["total_invoices"] == 0
        assert report["average_invoice"] == Decimal("0.00")
        assert report["customer_purchases"][0]["invoice_count"] == 0

    def test_invalid_filters_are_rejected(self, app):
        with pytest.raises(ValidationError) as exc_info:
            app.report_manager.get_sales_report(end_date="soon")
        assert "end_date" in exc_info.value.errors

        with pytest.raises(ValidationError):
            app.report_manager.get_sales_report(customer_id="7")

        with pytest.raises(NotFoundError):
            app.report_manager.get_sales_report(customer_id=404)
