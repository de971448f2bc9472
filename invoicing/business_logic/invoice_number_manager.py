# invoicing/business_logic/invoice_number_manager.py

from typing import Optional, TYPE_CHECKING
import sqlite3

from invoicing.config import INVOICE_NUMBER_START

if TYPE_CHECKING:
    from invoicing.data_access.invoices_repository import InvoicesRepository

import logging

logger = logging.getLogger(__name__)


class InvoiceNumberManager:
    """
    Hands out invoice numbers from one sequence shared by invoices and
    pre-invoices. The next number is derived from the stored maximum, so it must
    be read inside the transaction that inserts the invoice.
    """

    def __init__(self, invoices_repository: 'InvoicesRepository',
                 start_number: int = INVOICE_NUMBER_START):
        self.invoices_repo = invoices_repository
        self.start_number = start_number

    def get_next_invoice_number(self, conn: Optional[sqlite3.Connection] = None) -> int:
        current_max = self.invoices_repo.get_max_invoice_number(conn=conn)
        next_number = self.start_number if current_max is None else current_max + 1
        logger.debug(f"Next invoice number: {next_number}")
        return next_number
