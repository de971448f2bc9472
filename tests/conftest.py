"""Shared fixtures: an InvoicingApp over a temporary SQLite file with a controllable clock."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from invoicing.business_logic.invoice_calculator import calculate_totals
from invoicing.main_app import InvoicingApp


class FakeClock:
    """Returns `current` and then moves it forward by `step`, so consecutive writes get distinct timestamps."""

    def __init__(self, start=datetime(2024, 5, 15, 9, 0, 0), step=timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self):
        value = self.current
        self.current = self.current + self.step
        return value

    def set(self, value):
        self.current = value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(tmp_path, clock):
    return InvoicingApp(db_path=str(tmp_path / "invoicing.db"), clock=clock)


@pytest.fixture
def strict_app(tmp_path, clock):
    """Refuses to take stock below zero."""
    return InvoicingApp(db_path=str(tmp_path / "strict.db"), clock=clock, allow_negative_stock=False)


@pytest.fixture
def customer(app):
    return app.customer_manager.create_customer("Sara", "Ahmadi", phone="0912")


@pytest.fixture
def product(app):
    return app.product_manager.create_product("Widget", Decimal("100.00"), quantity=10)


@pytest.fixture
def make_invoice():
    """Builds invoice_data with totals from calculate_totals and creates it."""

    def _make(app, customer_id, items, invoice_type="invoice", discount_type="percent", discount_value=0):
        totals = calculate_totals(items, discount_type, discount_value)
        invoice_data = {
            "customer_id": customer_id,
            "type": invoice_type,
            "discount_type": discount_type,
            "discount_value": discount_value,
            **totals,
        }
        return app.invoice_manager.create_invoice(invoice_data, items)

    return _make
