"""Tests for CustomerManager."""

import pytest

from invoicing.exceptions import NotFoundError, ValidationError


class TestCustomerManager:

    def test_create_strips_names(self, app):
        customer = app.customer_manager.create_customer(" Maryam ", "Hosseini ", national_id="0012345678")

        fetched = app.customer_manager.get_customer_by_id(customer.id)

        assert fetched.full_name == "Maryam Hosseini"
        assert fetched.national_id == "0012345678"
        assert fetched.created_at is not None

    def test_names_are_required(self, app):
        with pytest.raises(ValidationError) as exc_info:
            app.customer_manager.create_customer("", "   ")

        assert set(exc_info.value.errors) == {"first_name", "last_name"}

    def test_search_matches_full_name(self, app, customer):
        app.customer_manager.create_customer("Ali", "Sarabi")

        assert [c.id for c in app.customer_manager.get_customers(search="Sara Ahm")] == [customer.id]
        assert len(app.customer_manager.get_customers(search="sara")) == 2
        assert len(app.customer_manager.get_customers()) == 2

    def test_update(self, app, customer):
        updated = app.customer_manager.update_customer(customer.id, {"phone": "0935", "notes": "VIP"})

        assert updated.phone == "0935"
        assert app.customer_manager.get_customer_by_id(customer.id).notes == "VIP"

    def test_update_validates(self, app, customer):
        with pytest.raises(ValidationError):
            app.customer_manager.update_customer(customer.id, {"first_name": ""})
        with pytest.raises(ValidationError):
            app.customer_manager.update_customer(customer.id, {"created_at": None})
        with pytest.raises(NotFoundError):
            app.customer_manager.update_customer(999, {"phone": "1"})

    def test_delete(self, app, customer):
        assert app.customer_manager.delete_customer(customer.id) is True
        assert app.customer_manager.get_customer_by_id(customer.id) is None
        assert app.customer_manager.delete_customer(customer.id) is False
