# invoicing/business_logic/report_manager.py

from typing import List, Dict, Any, Optional, TYPE_CHECKING

from .invoice_manager import normalize_date_bound
from .invoice_calculator import ZERO
from invoicing.constants import InvoiceType, MONEY_QUANTUM, SQLITE_MAX_INTEGER
from invoicing.exceptions import ValidationError

if TYPE_CHECKING:
    from .customer_manager import CustomerManager
    from ..data_access.invoices_repository import InvoicesRepository

import logging
logger = logging.getLogger(__name__)


class ReportManager:
    """
    Sales report over a date range, optionally for one customer.
    """

    def __init__(self,
                 invoices_repository: 'InvoicesRepository',
                 customer_manager: 'CustomerManager'):
        self.invoices_repo = invoices_repository
        self.customer_manager = customer_manager

    def get_sales_report(self,
                         start_date=None,
                         end_date=None,
                         customer_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Returns:
            total_sales, total_invoices, average_invoice: over final invoices only.
            total_pre_invoices: count of pre-invoices in the same range.
            customer_purchases: [{'customer', 'invoice_count', 'total_purchases'}, ...]
                for every customer (or just `customer_id`), biggest buyers first.
        Date bounds are inclusive; a bare date covers the whole day.
        """
        if customer_id is not None and (isinstance(customer_id, bool) or not isinstance(customer_id, int) or not 0 < customer_id <= SQLITE_MAX_INTEGER):
            raise ValidationError("مشتری نامعتبر است.", {"customer_id": "شناسه مشتری نامعتبر است."})
        start = normalize_date_bound(start_date, "start_date")
        end = normalize_date_bound(end_date, "end_date", end=True)
        logger.info(f"Generating sales report: start={start}, end={end}, customer_id={customer_id}")

        invoices = self.invoices_repo.find_filtered(customer_id=customer_id, start=start, end=end)
        sales = [inv for inv in invoices if inv.type == InvoiceType.INVOICE]
        total_sales = sum((inv.total for inv in sales), ZERO)
        average_invoice = (total_sales / len(sales)).quantize(MONEY_QUANTUM) if sales else ZERO

        per_customer: Dict[int, Dict[str, Any]] = {}
        for inv in sales:
            row = per_customer.setdefault(inv.customer_id, {"invoice_count": 0, "total_purchases": ZERO})
            row["invoice_count"] += 1
            row["total_purchases"] += inv.total

        if customer_id is not None:
            customers = [self.customer_manager.require_customer(customer_id)]
        else:
            customers = self.customer_manager.get_customers()
        customer_purchases: List[Dict[str, Any]] = []
        for customer in customers:
            row = per_customer.get(customer.id, {"invoice_count": 0, "total_purchases": ZERO})
            customer_purchases.append({"customer": customer, **row})
        customer_purchases.sort(key=lambda r: (-r["total_purchases"], r["customer"].id))

        return {
            "total_sales": total_sales,
            "total_invoices": len(sales),
            "total_pre_invoices": len(invoices) - len(sales),
            "average_invoice": average_invoice,
            "customer_purchases": customer_purchases,
        }
