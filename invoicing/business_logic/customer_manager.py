# invoicing/business_logic/customer_manager.py

from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING
from datetime import datetime
import sqlite3

from invoicing.business_logic.entities.customer_entity import CustomerEntity
from invoicing.exceptions import NotFoundError, ValidationError

if TYPE_CHECKING:
    from invoicing.data_access.customers_repository import CustomersRepository

import logging

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("first_name", "last_name", "address", "phone", "national_id", "notes")


class CustomerManager:
    def __init__(self, customers_repository: 'CustomersRepository',
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initializes the CustomerManager with a CustomersRepository.
        :param customers_repository: An instance of CustomersRepository.
        :param clock: Returns the current time; used for created_at.
        """
        if customers_repository is None:
            raise ValueError("customers_repository cannot be None")
        self.customers_repository = customers_repository
        self.clock = clock

    @staticmethod
    def _validate_names(first_name: Any, last_name: Any) -> None:
        errors: Dict[str, str] = {}
        if not isinstance(first_name, str) or not first_name.strip():
            errors["first_name"] = "نام مشتری نمی‌تواند خالی باشد."
        if not isinstance(last_name, str) or not last_name.strip():
            errors["last_name"] = "نام خانوادگی مشتری نمی‌تواند خالی باشد."
        if errors:
            logger.error(f"Invalid customer names: {errors}")
            raise ValidationError("اطلاعات وارد شده نامعتبر است.", errors)

    def create_customer(self, first_name: str, last_name: str,
                        address: Optional[str] = None,
                        phone: Optional[str] = None,
                        national_id: Optional[str] = None,
                        notes: Optional[str] = None) -> CustomerEntity:
        self._validate_names(first_name, last_name)
        customer = CustomerEntity(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            address=address,
            phone=phone,
            national_id=national_id,
            notes=notes,
            created_at=self.clock(),
        )
        created = self.customers_repository.add(customer)
        logger.info(f"Customer '{created.full_name}' (ID: {created.id}) added successfully.")
        return created

    def get_customer_by_id(self, customer_id: int,
                           conn: Optional[sqlite3.Connection] = None) -> Optional[CustomerEntity]:
        """Retrieves a customer by ID, or None."""
        customer = self.customers_repository.get_by_id(customer_id, conn=conn)
        if not customer:
            logger.warning(f"Customer with ID {customer_id} not found.")
        return customer

    def require_customer(self, customer_id: int,
                         conn: Optional[sqlite3.Connection] = None) -> CustomerEntity:
        customer = self.get_customer_by_id(customer_id, conn=conn)
        if customer is None:
            raise NotFoundError("مشتری", customer_id, "مشتری یافت نشد.")
        return customer

    def get_customers(self, search: Optional[str] = None) -> List[CustomerEntity]:
        if search:
            return self.customers_repository.search_by_name(search)
        return self.customers_repository.get_all(order_by="first_name ASC")

    def update_customer(self, customer_id: int, update_data: Dict[str, Any]) -> CustomerEntity:
        unknown = [key for key in update_data if key not in UPDATABLE_FIELDS]
        if unknown:
            raise ValidationError("اطلاعات وارد شده نامعتبر است.",
                                  {key: "این فیلد قابل ویرایش نیست." for key in unknown})
        customer = self.require_customer(customer_id)
        for key, value in update_data.items():
            setattr(customer, key, value)
        self._validate_names(customer.first_name, customer.last_name)

        self.customers_repository.update_fields(customer_id, update_data)
        logger.info(f"Customer ID {customer_id} updated: {sorted(update_data)}")
        return customer

    def delete_customer(self, customer_id: int) -> bool:
        logger.warning(f"Attempting to delete customer ID: {customer_id}.")
        return self.customers_repository.delete(customer_id)
