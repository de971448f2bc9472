# invoicing/business_logic/dashboard_manager.py

from typing import List, Dict, Any, Optional, Callable, TYPE_CHECKING
from datetime import datetime, timedelta

from .entities.invoice_entity import InvoiceEntity
from invoicing.config import DEFAULT_RECENT_INVOICES_LIMIT, DEFAULT_TOP_PRODUCTS_LIMIT
from invoicing.constants import InvoiceType
from invoicing.exceptions import ValidationError

if TYPE_CHECKING:
    from .invoice_manager import InvoiceManager
    from .product_manager import ProductManager
    from ..data_access.invoices_repository import InvoicesRepository

import logging
logger = logging.getLogger(__name__)


class DashboardManager:
    """
    Read-only figures for the dashboard. Only final invoices count as sales;
    pre-invoices are ignored everywhere.
    """

    def __init__(self,
                 invoices_repository: 'InvoicesRepository',
                 product_manager: 'ProductManager',
                 invoice_manager: 'InvoiceManager',
                 clock: Callable[[], datetime] = datetime.now):
        self.invoices_repo = invoices_repository
        self.product_manager = product_manager
        self.invoice_manager = invoice_manager
        self.clock = clock

    @staticmethod
    def _check_limit(limit: Any) -> None:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise ValidationError("تعداد نامعتبر است.", {"limit": "تعداد باید عدد صحیح نامنفی باشد."})

    def get_dashboard_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        today_sales / today_invoices: final invoices created in [start of today, start of tomorrow).
        month_sales: final invoices created since the first day of the current month.
        low_stock_count: products whose quantity is under the low-stock threshold.
        """
        now = now or self.clock()
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_tomorrow = start_of_today + timedelta(days=1)
        start_of_month = start_of_today.replace(day=1)

        today_sales, today_invoices = self.invoices_repo.sum_totals(
            InvoiceType.INVOICE, start_of_today, start_of_tomorrow)
        month_sales, _ = self.invoices_repo.sum_totals(InvoiceType.INVOICE, start_of_month)
        low_stock_count = self.product_manager.count_low_stock_products()

        stats = {
            "today_sales": today_sales,
            "today_invoices": today_invoices,
            "month_sales": month_sales,
            "low_stock_count": low_stock_count,
        }
        logger.debug(f"Dashboard stats for {now:%Y-%m-%d}: {stats}")
        return stats

    def get_top_products(self, limit: int = DEFAULT_TOP_PRODUCTS_LIMIT) -> List[Dict[str, Any]]:
        """[{'product': ProductEntity, 'sold_quantity': int}, ...], best sellers first, ties by product id."""
        self._check_limit(limit)
        return self.product_manager.get_top_selling_products(limit)

    def get_recent_invoices(self, limit: int = DEFAULT_RECENT_INVOICES_LIMIT) -> List[InvoiceEntity]:
        self._check_limit(limit)
        return self.invoice_manager.get_invoices(invoice_type=InvoiceType.INVOICE, limit=limit)
