# invoicing/main_app.py
import os
import logging
import logging.config
from datetime import datetime
from typing import Callable, Optional

# --- Configuration ---
from invoicing.config import (
    DATABASE_PATH, LOGGING_CONFIG, LOGS_DIR, LOG_LEVEL, LOG_FORMAT, ALLOW_NEGATIVE_STOCK
)

# --- Data Access Layer (DAL) ---
from invoicing.data_access.database_manager import DatabaseManager
from invoicing.data_access.customers_repository import CustomersRepository
from invoicing.data_access.products_repository import ProductsRepository
from invoicing.data_access.invoices_repository import InvoicesRepository
from invoicing.data_access.invoice_items_repository import InvoiceItemsRepository

# --- Business Logic Layer (BLL) ---
from invoicing.business_logic.customer_manager import CustomerManager
from invoicing.business_logic.product_manager import ProductManager
from invoicing.business_logic.invoice_number_manager import InvoiceNumberManager
from invoicing.business_logic.invoice_manager import InvoiceManager
from invoicing.business_logic.dashboard_manager import DashboardManager
from invoicing.business_logic.report_manager import ReportManager

logger = logging.getLogger(__name__)


def configure_logging(to_file: bool = True) -> None:
    """Applies LOGGING_CONFIG (console + rotating file); without a file, console only."""
    if to_file:
        os.makedirs(LOGS_DIR, exist_ok=True)
        logging.config.dictConfig(LOGGING_CONFIG)
    else:
        logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')


class InvoicingApp:
    """
    Composition root: owns the DatabaseManager, the repositories and the
    managers. An API layer or a UI holds one instance and calls the managers.
    """

    def __init__(self,
                 db_path: str = DATABASE_PATH,
                 clock: Callable[[], datetime] = datetime.now,
                 allow_negative_stock: bool = ALLOW_NEGATIVE_STOCK,
                 configure_logs: bool = False,
                 create_tables: bool = True):
        if configure_logs:
            configure_logging()

        logger.info("Initializing Database Manager...")
        self.db_manager = DatabaseManager(db_path)
        if create_tables:
            self.db_manager.create_tables()

        logger.info("Initializing Repositories...")
        self.customers_repo = CustomersRepository(self.db_manager)
        self.products_repo = ProductsRepository(self.db_manager)
        self.invoices_repo = InvoicesRepository(self.db_manager)
        self.invoice_items_repo = InvoiceItemsRepository(self.db_manager)

        logger.info("Initializing Managers...")
        self.customer_manager = CustomerManager(self.customers_repo, clock=clock)
        self.product_manager = ProductManager(
            product_repository=self.products_repo,
            allow_negative_stock=allow_negative_stock,
            clock=clock
        )
        self.number_manager = InvoiceNumberManager(self.invoices_repo)
        self.invoice_manager = InvoiceManager(
            db_manager=self.db_manager,
            invoices_repository=self.invoices_repo,
            invoice_items_repository=self.invoice_items_repo,
            product_manager=self.product_manager,
            customer_manager=self.customer_manager,
            number_manager=self.number_manager,
            clock=clock
        )
        self.dashboard_manager = DashboardManager(
            invoices_repository=self.invoices_repo,
            product_manager=self.product_manager,
            invoice_manager=self.invoice_manager,
            clock=clock
        )
        self.report_manager = ReportManager(
            invoices_repository=self.invoices_repo,
            customer_manager=self.customer_manager
        )
        logger.info(f"Invoicing app ready (database: {db_path}).")


def main(db_path: Optional[str] = None) -> int:
    configure_logging()
    try:
        app = InvoicingApp(db_path or DATABASE_PATH)
    except Exception as e:
        logger.error(f"FATAL: Could not initialize database: {e}", exc_info=True)
        return 1
    stats = app.dashboard_manager.get_dashboard_stats()
    logger.info(f"Dashboard: {stats}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
