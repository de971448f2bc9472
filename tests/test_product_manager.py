"""Tests for ProductManager: product store operations and the stock adjustment policy."""

import logging
from decimal import Decimal

import pytest

from invoicing.exceptions import InsufficientStockError, NotFoundError, ValidationError


class TestProductStore:

    def test_create_and_fetch(self, app):
        created = app.product_manager.create_product(
            "  Desk Lamp ", "49.999", quantity=4, purchase_price=30, description="LED")

        fetched = app.product_manager.get_product_by_id(created.id)

        assert fetched.name == "Desk Lamp"
        assert fetched.sale_price == Decimal("50.00")
        assert fetched.purchase_price == Decimal("30.00")
        assert fetched.quantity == 4
        assert fetched.created_at is not None

    def test_create_rejects_bad_input(self, app):
        with pytest.raises(ValidationError) as exc_info:
            app.product_manager.create_product("", "-1", quantity="many")

        assert set(exc_info.value.errors) == {"name", "sale_price", "quantity"}

    def test_create_rejects_out_of_range_values(self, app):
        with pytest.raises(ValidationError) as exc_info:
            app.product_manager.create_product("Huge", "1e30", quantity=2 ** 63)

        assert set(exc_info.value.errors) == {"sale_price", "quantity"}
        assert app.product_manager.get_products() == []

    def test_missing_product_is_none(self, app):
        assert app.product_manager.get_product_by_id(404) is None
        with pytest.raises(NotFoundError):
            app.product_manager.require_product(404)

    def test_search_by_name(self, app):
        app.product_manager.create_product("Blue Pen", 1)
        app.product_manager.create_product("Red Pen", 1)
        app.product_manager.create_product("Notebook", 3)

        names = [p.name for p in app.product_manager.get_products(search="pen")]

        assert names == ["Blue Pen", "Red Pen"]
        assert len(app.product_manager.get_products()) == 3

    def test_update_ignores_quantity(self, app, product, caplog):
        updated = app.product_manager.update_product(product.id, {"sale_price": "120", "quantity": 999})

        assert updated.sale_price == Decimal("120.00")
        reloaded = app.product_manager.get_product_by_id(product.id)
        assert reloaded.quantity == 10
        assert reloaded.sale_price == Decimal("120.00")
        assert "was ignored" in caplog.text

    def test_update_rejects_unknown_fields(self, app, product):
        with pytest.raises(ValidationError):
            app.product_manager.update_product(product.id, {"id": 5})

    def test_delete(self, app, product):
        assert app.product_manager.delete_product(product.id) is True
        assert app.product_manager.delete_product(product.id) is False


class TestAdjustQuantity:

    def test_adjust_up_and_down(self, app, product):
        app.product_manager.adjust_quantity(product.id, -4)
        app.product_manager.adjust_quantity(product.id, 2)

        assert app.product_manager.get_product_by_id(product.id).quantity == 8

    def test_missing_product_raises(self, app):
        with pytest.raises(NotFoundError):
            app.product_manager.adjust_quantity(404, -1)

    def test_negative_stock_is_logged_when_allowed(self, app, product, caplog):
        with caplog.at_level(logging.WARNING):
            app.product_manager.adjust_quantity(product.id, -11)

        assert app.product_manager.get_product_by_id(product.id).quantity == -1
        assert "oversold" in caplog.text

    def test_negative_stock_is_refused_when_disallowed(self, strict_app):
        product = strict_app.product_manager.create_product("Cable", 3, quantity=2)

        with pytest.raises(InsufficientStockError) as exc_info:
            strict_app.product_manager.adjust_quantity(product.id, -3)

        assert exc_info.value.requested == 3
        assert strict_app.product_manager.get_product_by_id(product.id).quantity == 2

        strict_app.product_manager.adjust_quantity(product.id, -2)
        assert strict_app.product_manager.get_product_by_id(product.id).quantity == 0


class TestLowStock:

    def test_low_stock_is_below_five(self, app):
        for name, quantity in (("A", 5), ("B", 4), ("C", 0), ("D", 12)):
            app.product_manager.create_product(name, 1, quantity=quantity)

        low = app.product_manager.get_low_stock_products()

        assert [p.name for p in low] == ["C", "B"]
        assert all(p.is_low_stock for p in low)
        assert app.product_manager.count_low_stock_products() == 2
