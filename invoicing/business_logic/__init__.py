# invoicing/business_logic/__init__.py
from .customer_manager import CustomerManager
from .product_manager import ProductManager
from .invoice_number_manager import InvoiceNumberManager
from .invoice_manager import InvoiceManager
from .dashboard_manager import DashboardManager
from .report_manager import ReportManager
from . import invoice_calculator
