# invoicing/data_access/__init__.py

from .database_manager import DatabaseManager
from .base_repository import BaseRepository

from .customers_repository import CustomersRepository
from .products_repository import ProductsRepository
from .invoices_repository import InvoicesRepository
from .invoice_items_repository import InvoiceItemsRepository
