# invoicing/data_access/invoice_items_repository.py

import sqlite3
from typing import List, Optional

from invoicing.data_access.base_repository import BaseRepository
from invoicing.data_access.database_manager import DatabaseManager
from invoicing.business_logic.entities.invoice_item_entity import InvoiceItemEntity
import logging

logger = logging.getLogger(__name__)


class InvoiceItemsRepository(BaseRepository[InvoiceItemEntity]):
    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager=db_manager,
                         model_type=InvoiceItemEntity,
                         table_name="invoice_items")

    def get_by_invoice_id(self, invoice_id: int,
                          conn: Optional[sqlite3.Connection] = None) -> List[InvoiceItemEntity]:
        query = f"SELECT * FROM {self._table_name} WHERE invoice_id = ? ORDER BY id ASC"
        return self._fetch_entities(query, (invoice_id,), conn=conn)

    def delete_by_invoice_id(self, invoice_id: int, conn: Optional[sqlite3.Connection] = None) -> int:
        query = f"DELETE FROM {self._table_name} WHERE invoice_id = ?"
        cursor = self.db_manager.execute_query(query, (invoice_id,), conn=conn)
        logger.debug(f"Deleted {cursor.rowcount} item(s) of invoice ID {invoice_id}.")
        return cursor.rowcount
