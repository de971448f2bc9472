# invoicing/data_access/customers_repository.py

from typing import List

from invoicing.data_access.base_repository import BaseRepository
from invoicing.data_access.database_manager import DatabaseManager
from invoicing.business_logic.entities.customer_entity import CustomerEntity
import logging

logger = logging.getLogger(__name__)


class CustomersRepository(BaseRepository[CustomerEntity]):
    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager=db_manager,
                         model_type=CustomerEntity,
                         table_name="customers")

    def search_by_name(self, name_query: str) -> List[CustomerEntity]:
        query = (f"SELECT * FROM {self._table_name} "
                 f"WHERE first_name || ' ' || last_name LIKE ? ORDER BY first_name ASC")
        return self._fetch_entities(query, (f"%{name_query}%",))
