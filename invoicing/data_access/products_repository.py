# invoicing/data_access/products_repository.py

import sqlite3
from typing import Any, Dict, List, Optional

from invoicing.data_access.base_repository import BaseRepository
from invoicing.data_access.database_manager import DatabaseManager
from invoicing.business_logic.entities.product_entity import ProductEntity
from invoicing.constants import InvoiceType
import logging

logger = logging.getLogger(__name__)


class ProductsRepository(BaseRepository[ProductEntity]):
    def __init__(self, db_manager: DatabaseManager):
        super().__init__(db_manager=db_manager,
                         model_type=ProductEntity,
                         table_name="products")

    def search_by_name(self, name_query: str) -> List[ProductEntity]:
        query = f"SELECT * FROM {self._table_name} WHERE name LIKE ? ORDER BY name ASC"
        return self._fetch_entities(query, (f"%{name_query}%",))

    def adjust_quantity(self, product_id: int, delta: int, allow_negative: bool = True,
                        conn: Optional[sqlite3.Connection] = None) -> int:
        """
        Applies quantity += delta in a single UPDATE statement.
        Returns the number of rows changed: 0 means the product is missing or,
        with allow_negative=False, that the result would drop below zero.
        """
        query = f"UPDATE {self._table_name} SET quantity = quantity + ? WHERE id = ?"
        params: List[Any] = [delta, product_id]
        if not allow_negative:
            query += " AND quantity + ? >= 0"
            params.append(delta)
        cursor = self.db_manager.execute_query(query, params, conn=conn)
        return cursor.rowcount

    def get_low_stock(self, threshold: int) -> List[ProductEntity]:
        query = f"SELECT * FROM {self._table_name} WHERE quantity < ? ORDER BY quantity ASC, id ASC"
        return self._fetch_entities(query, (threshold,))

    def count_low_stock(self, threshold: int) -> int:
        row = self.db_manager.fetch_one(
            f"SELECT COUNT(*) AS cnt FROM {self._table_name} WHERE quantity < ?", (threshold,))
        return int(row["cnt"]) if row else 0

    def get_top_selling(self, limit: int) -> List[Dict[str, Any]]:
        """
        Every product with the quantity sold on final invoices, best sellers first.
        Items on pre-invoices do not count.
        """
        query = f"""
            SELECT p.*, COALESCE(SUM(CASE WHEN i.type = ? THEN ii.quantity END), 0) AS sold_quantity
            FROM {self._table_name} p
            LEFT JOIN invoice_items ii ON ii.product_id = p.id
            LEFT JOIN invoices i ON i.id = ii.invoice_id
            GROUP BY p.id
            ORDER BY sold_quantity DESC, p.id ASC
            LIMIT ?
        """
        rows = self.db_manager.fetch_all(query, (InvoiceType.INVOICE.value, limit))
        return [
            {"product": self._entity_from_row(dict(row)), "sold_quantity": int(row["sold_quantity"])}
            for row in rows
        ]
