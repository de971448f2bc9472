# invoicing/data_access/database_manager.py

import os
import sqlite3
import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence

from invoicing.config import DATABASE_PATH, DB_TIMEOUT_SECONDS
from invoicing.constants import InvoiceType, InvoiceStatus, DiscountType
from invoicing.exceptions import ConflictError, StorageError, ValidationError

logger = logging.getLogger(__name__)


def _enum_values(enum_cls) -> str:
    return ', '.join(f"'{member.value}'" for member in enum_cls)


# Tables in dependency order: referenced tables come first.
TABLE_QUERIES = [
    """
    CREATE TABLE IF NOT EXISTS customers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        address TEXT,
        phone TEXT,
        national_id TEXT,
        notes TEXT,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 0,
        purchase_price REAL,
        sale_price REAL NOT NULL,
        description TEXT,
        created_at TEXT NOT NULL
    );
    """,
    # customer_id and product_id are plain references: customers and products
    # are owned independently and may be removed while invoices keep them.
    """
    CREATE TABLE IF NOT EXISTS invoices (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        invoice_number INTEGER NOT NULL UNIQUE,
        customer_id INTEGER NOT NULL,
        type TEXT NOT NULL CHECK(type IN ({types})),
        subtotal REAL NOT NULL,
        discount_type TEXT NOT NULL DEFAULT '{default_discount}' CHECK(discount_type IN ({discount_types})),
        discount_value REAL NOT NULL DEFAULT 0.0,
        discount_amount REAL NOT NULL DEFAULT 0.0,
        total REAL NOT NULL,
        status TEXT NOT NULL DEFAULT '{default_status}' CHECK(status IN ({statuses})),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """.format(
        types=_enum_values(InvoiceType),
        default_discount=DiscountType.PERCENT.value,
        discount_types=_enum_values(DiscountType),
        default_status=InvoiceStatus.DRAFT.value,
        statuses=_enum_values(InvoiceStatus),
    ),
    """
    CREATE TABLE IF NOT EXISTS invoice_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        invoice_id INTEGER NOT NULL,
        product_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL,
        price REAL NOT NULL,
        total REAL NOT NULL,
        FOREIGN KEY (invoice_id) REFERENCES invoices (id) ON DELETE CASCADE
    );
    """,
]

INDEX_QUERIES = [
    "CREATE INDEX IF NOT EXISTS idx_invoices_created_at ON invoices (created_at);",
    "CREATE INDEX IF NOT EXISTS idx_invoices_customer_id ON invoices (customer_id);",
    "CREATE INDEX IF NOT EXISTS idx_invoice_items_invoice_id ON invoice_items (invoice_id);",
    "CREATE INDEX IF NOT EXISTS idx_invoice_items_product_id ON invoice_items (product_id);",
]


class DatabaseManager:
    """
    Hands out SQLite connections.

    Connections run in autocommit mode: a statement executed on its own commits
    immediately, while `transaction()` groups statements under an explicit
    BEGIN IMMEDIATE ... COMMIT so that a failure at any step rolls back all of them.
    """

    def __init__(self, db_path: str = DATABASE_PATH, timeout: float = DB_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        directory = os.path.dirname(self.db_path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory, exist_ok=True)
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
            conn.row_factory = sqlite3.Row # Access columns by name
            conn.execute("PRAGMA foreign_keys = ON;")
            logger.debug(f"Database connection established to {self.db_path}")
            return conn
        except sqlite3.Error as e:
            logger.error(f"Error connecting to database {self.db_path}: {e}")
            raise StorageError("اتصال به پایگاه داده برقرار نشد.") from e

    @contextmanager
    def connection(self, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        """Yields `conn` when the caller already holds one, otherwise a short-lived connection."""
        if conn is not None:
            yield conn
            return
        own_conn = self._connect()
        try:
            yield own_conn
        finally:
            own_conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            try:
                # IMMEDIATE takes the writer lock up front, serializing concurrent writers.
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                logger.error(f"Could not start a transaction on {self.db_path}: {e}")
                raise StorageError("شروع تراکنش پایگاه داده ممکن نشد.") from e
            try:
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                logger.error(f"Transaction failed and was rolled back: {e}", exc_info=True)
                raise StorageError("خطا در ذخیره اطلاعات در پایگاه داده.") from e
            except Exception:
                self._rollback(conn)
                logger.warning("Transaction rolled back.")
                raise
        finally:
            conn.close()

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    @staticmethod
    def _translate_error(e: Exception) -> Exception:
        if isinstance(e, OverflowError):
            # a bound int outside SQLite's 64-bit INTEGER range
            return ValidationError("مقدار خارج از محدوده مجاز است.", {"params": str(e)})
        if isinstance(e, sqlite3.IntegrityError) and "UNIQUE" in str(e).upper():
            return ConflictError(f"مقدار تکراری: {e}")
        return StorageError("خطا در اجرای دستور پایگاه داده.")

    def execute_query(self, query: str, params: Optional[Sequence[Any]] = None,
                      conn: Optional[sqlite3.Connection] = None) -> sqlite3.Cursor:
        try:
            with self.connection(conn) as active_conn:
                cursor = active_conn.cursor()
                cursor.execute(query, params or ())
                return cursor
        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"Query execution failed: {query} with params {params} - {e}")
            raise self._translate_error(e) from e

    def fetch_one(self, query: str, params: Optional[Sequence[Any]] = None,
                  conn: Optional[sqlite3.Connection] = None) -> Optional[sqlite3.Row]:
        try:
            with self.connection(conn) as active_conn:
                cursor = active_conn.cursor()
                cursor.execute(query, params or ())
                return cursor.fetchone()
        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"Fetch one failed: {query} with params {params} - {e}")
            raise self._translate_error(e) from e

    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None,
                  conn: Optional[sqlite3.Connection] = None) -> List[sqlite3.Row]:
        try:
            with self.connection(conn) as active_conn:
                cursor = active_conn.cursor()
                cursor.execute(query, params or ())
                return cursor.fetchall()
        except (sqlite3.Error, OverflowError) as e:
            logger.error(f"Fetch all failed: {query} with params {params} - {e}")
            raise self._translate_error(e) from e

    def create_tables(self) -> None:
        logger.info(f"Attempting to execute {len(TABLE_QUERIES)} table creation SQL query(ies).")
        with self.transaction() as conn:
            for query_index, query_sql in enumerate(TABLE_QUERIES):
                table_name = query_sql.split("EXISTS", 1)[1].split("(", 1)[0].strip()
                logger.debug(f"Executing SQL for: {table_name} (Query {query_index+1}/{len(TABLE_QUERIES)})")
                conn.execute(query_sql)
            for index_sql in INDEX_QUERIES:
                conn.execute(index_sql)
        logger.info("Database tables checked/created successfully.")

