# invoicing/data_access/invoices_repository.py

import sqlite3
from typing import Any, List, Optional, Tuple
from datetime import datetime
from decimal import Decimal

from invoicing.data_access.base_repository import BaseRepository, to_db_value
from invoicing.data_access.database_manager import DatabaseManager
from invoicing.business_logic.entities.invoice_entity import InvoiceEntity
from invoicing.constants import InvoiceType, MONEY_QUANTUM
import logging

logger = logging.getLogger(__name__)


class InvoicesRepository(BaseRepository[InvoiceEntity]):
    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager=db_manager,
                         model_type=InvoiceEntity,
                         table_name="invoices")

    def get_max_invoice_number(self, conn: Optional[sqlite3.Connection] = None) -> Optional[int]:
        row = self.db_manager.fetch_one(
            f"SELECT MAX(invoice_number) AS max_number FROM {self._table_name}", conn=conn)
        if row is None or row["max_number"] is None:
            return None
        return int(row["max_number"])

    def find_filtered(self,
                      invoice_type: Optional[InvoiceType] = None,
                      customer_id: Optional[int] = None,
                      start: Optional[datetime] = None,
                      end: Optional[datetime] = None,
                      number_search: Optional[str] = None,
                      limit: Optional[int] = None,
                      conn: Optional[sqlite3.Connection] = None) -> List[InvoiceEntity]:
        """Invoices matching every given filter, newest first. Date bounds are inclusive."""
        conditions: List[str] = []
        params: List[Any] = []
        if invoice_type is not None:
            conditions.append("type = ?")
            params.append(invoice_type.value)
        if customer_id is not None:
            conditions.append("customer_id = ?")
            params.append(customer_id)
        if start is not None:
            conditions.append("created_at >= ?")
            params.append(to_db_value(start))
        if end is not None:
            conditions.append("created_at <= ?")
            params.append(to_db_value(end))
        if number_search:
            escaped = number_search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            conditions.append("CAST(invoice_number AS TEXT) LIKE ? ESCAPE '\\'")
            params.append(f"%{escaped}%")

        query = f"SELECT * FROM {self._table_name}"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        return self._fetch_entities(query, params, conn=conn)

    def sum_totals(self, invoice_type: InvoiceType, start: datetime,
                   end: Optional[datetime] = None) -> Tuple[Decimal, int]:
        """Sum of `total` and row count for one type within [start, end)."""
        query = (f"SELECT COALESCE(SUM(total), 0) AS total_sum, COUNT(*) AS cnt "
                 f"FROM {self._table_name} WHERE type = ? AND created_at >= ?")
        params: List[Any] = [invoice_type.value, to_db_value(start)]
        if end is not None:
            query += " AND created_at < ?"
            params.append(to_db_value(end))
        row = self.db_manager.fetch_one(query, params)
        return Decimal(str(row["total_sum"])).quantize(MONEY_QUANTUM), int(row["cnt"])
