# invoicing/business_logic/invoice_manager.py

from typing import Optional, List, Dict, Any, Callable, Union, TYPE_CHECKING
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
import sqlite3

from .entities.invoice_entity import InvoiceEntity
from .entities.invoice_item_entity import InvoiceItemEntity
from .invoice_calculator import calculate_item_total, parse_money, ZERO, OUT_OF_RANGE_MESSAGE
from invoicing.config import MAX_INVOICE_NUMBER_ATTEMPTS
from invoicing.constants import (
    InvoiceType, InvoiceStatus, DiscountType, STATUS_FOR_TYPE, DATE_FORMAT, SQLITE_MAX_INTEGER
)
from invoicing.exceptions import ConflictError, NotFoundError, ValidationError

# --- Manager and Repository Imports (TYPE_CHECKING only, avoids import cycles) ---
if TYPE_CHECKING:
    from .product_manager import ProductManager
    from .customer_manager import CustomerManager
    from .invoice_number_manager import InvoiceNumberManager
    from ..data_access.database_manager import DatabaseManager
    from ..data_access.invoices_repository import InvoicesRepository
    from ..data_access.invoice_items_repository import InvoiceItemsRepository

import logging
logger = logging.getLogger(__name__)

# Header fields an update may change. type/status only move through conversion.
UPDATABLE_FIELDS = ("customer_id", "subtotal", "discount_type", "discount_value", "discount_amount", "total")
LIFECYCLE_FIELDS = ("type", "status")

DateBound = Union[datetime, date, str, None]


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 < value <= SQLITE_MAX_INTEGER


def _to_local_naive(value: datetime) -> datetime:
    # stored timestamps are naive local time
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def normalize_date_bound(value: DateBound, field_name: str, end: bool = False) -> Optional[datetime]:
    """
    Turns a filter bound into a naive local datetime. A bare date covers the
    whole day: start of day as a lower bound, end of day as an upper one.
    ISO strings may carry an offset or a trailing "Z".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_local_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.max if end else time.min)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            if len(text) == 10:
                day = datetime.strptime(text, DATE_FORMAT).date()
                return datetime.combine(day, time.max if end else time.min)
            return _to_local_naive(datetime.fromisoformat(text))
        except ValueError:
            pass
    raise ValidationError("تاریخ نامعتبر است.", {field_name: f"تاریخ '{value}' قابل تبدیل نیست."})


class InvoiceManager:
    def __init__(self,
                 db_manager: 'DatabaseManager',
                 invoices_repository: 'InvoicesRepository',
                 invoice_items_repository: 'InvoiceItemsRepository',
                 product_manager: 'ProductManager',
                 customer_manager: 'CustomerManager',
                 number_manager: 'InvoiceNumberManager',
                 clock: Callable[[], datetime] = datetime.now,
                 max_number_attempts: int = MAX_INVOICE_NUMBER_ATTEMPTS):
        """
        Initializes the InvoiceManager.

        Every write runs inside db_manager.transaction(); the repositories and the
        product/customer managers receive that transaction's connection.
        """
        self.db_manager = db_manager
        self.invoices_repo = invoices_repository
        self.invoice_items_repo = invoice_items_repository
        self.product_manager = product_manager
        self.customer_manager = customer_manager
        self.number_manager = number_manager
        self.clock = clock
        self.max_number_attempts = max_number_attempts

    # --- Validation ---

    def _validate_invoice_data(self, invoice_data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        """
        Returns the cleaned header values. With partial=True (update) only the
        keys present in invoice_data are validated and returned.
        """
        if not isinstance(invoice_data, dict):
            raise ValidationError("اطلاعات فاکتور نامعتبر است.", {"invoice": "اطلاعات فاکتور باید یک دیکشنری باشد."})

        errors: Dict[str, str] = {}
        values: Dict[str, Any] = {}

        if not partial or "customer_id" in invoice_data:
            customer_id = invoice_data.get("customer_id")
            if _is_positive_int(customer_id):
                values["customer_id"] = customer_id
            else:
                errors["customer_id"] = "مشتری انتخاب نشده است."

        if not partial:
            try:
                values["type"] = InvoiceType(invoice_data.get("type"))
            except ValueError:
                errors["type"] = "نوع فاکتور نامعتبر است."

        for name in ("subtotal", "total"):
            if not partial or name in invoice_data:
                amount = parse_money(invoice_data.get(name), name, errors, allow_negative=(name == "total"))
                if amount is not None:
                    values[name] = amount

        if "discount_type" in invoice_data:
            try:
                values["discount_type"] = DiscountType(invoice_data["discount_type"])
            except ValueError:
                errors["discount_type"] = "نوع تخفیف نامعتبر است."
        elif not partial:
            values["discount_type"] = DiscountType.PERCENT

        for name in ("discount_value", "discount_amount"):
            if name in invoice_data:
                amount = parse_money(invoice_data[name], name, errors)
                if amount is not None:
                    values[name] = amount
            elif not partial:
                values[name] = ZERO

        if errors:
            logger.error(f"Invoice data rejected: {errors}")
            raise ValidationError("اطلاعات فاکتور نامعتبر است.", errors)
        return values

    def _validate_items(self, items_data: Any) -> List[Dict[str, Any]]:
        if not isinstance(items_data, (list, tuple)):
            raise ValidationError("فهرست اقلام نامعتبر است.", {"items": "اقلام فاکتور باید یک لیست باشد."})

        errors: Dict[str, str] = {}
        cleaned: List[Dict[str, Any]] = []
        for index, item in enumerate(items_data):
            prefix = f"items[{index}]"
            if not isinstance(item, dict):
                errors[prefix] = "ردیف فاکتور نامعتبر است."
                continue
            errors_before = len(errors)
            product_id = item.get("product_id")
            quantity = item.get("quantity")
            if not _is_positive_int(product_id):
                errors[f"{prefix}.product_id"] = "کالا انتخاب نشده است."
            if not _is_positive_int(quantity):
                errors[f"{prefix}.quantity"] = "تعداد باید عدد صحیح مثبت باشد."
            price = parse_money(item.get("price"), f"{prefix}.price", errors)
            if len(errors) > errors_before:
                continue

            try:
                total = calculate_item_total(quantity, price)
            except InvalidOperation:
                errors[f"{prefix}.total"] = OUT_OF_RANGE_MESSAGE
                continue
            if item.get("total") is not None:
                supplied_total = parse_money(item["total"], f"{prefix}.total", errors)
                if supplied_total is not None and supplied_total != total:
                    logger.warning(f"Item {index} total {supplied_total} differs from quantity x price ({total}); storing {total}.")
            cleaned.append({"product_id": product_id, "quantity": quantity, "price": price, "total": total})

        if errors:
            logger.error(f"Invoice items rejected: {errors}")
            raise ValidationError("اقلام فاکتور نامعتبر است.", errors)
        return cleaned

    @staticmethod
    def _warn_on_total_mismatch(subtotal: Decimal, discount_amount: Decimal, total: Decimal) -> None:
        if subtotal - discount_amount != total:
            logger.warning(f"Invoice total {total} does not equal subtotal {subtotal} - discount {discount_amount}; stored as supplied.")

    # --- Writes ---

    def _require_references(self, conn: sqlite3.Connection,
                            customer_id: Optional[int] = None,
                            items: Optional[List[Dict[str, Any]]] = None) -> None:
        if customer_id is not None:
            self.customer_manager.require_customer(customer_id, conn=conn)
        for product_id in sorted({item["product_id"] for item in items or []}):
            self.product_manager.require_product(product_id, conn=conn)

    def _insert_items(self, invoice_id: int, items: List[Dict[str, Any]],
                      conn: sqlite3.Connection) -> List[InvoiceItemEntity]:
        inserted = []
        for item in items:
            entity = InvoiceItemEntity(invoice_id=invoice_id, **item)
            inserted.append(self.invoice_items_repo.add(entity, conn=conn))
        return inserted

    def _decrement_stock(self, items: List[InvoiceItemEntity], conn: sqlite3.Connection) -> None:
        for item in items:
            self.product_manager.adjust_quantity(item.product_id, -item.quantity, conn=conn)

    def _insert_invoice(self, values: Dict[str, Any], items: List[Dict[str, Any]]) -> InvoiceEntity:
        now = self.clock()
        with self.db_manager.transaction() as conn:
            self._require_references(conn, customer_id=values["customer_id"], items=items)
            invoice_number = self.number_manager.get_next_invoice_number(conn=conn)
            invoice = InvoiceEntity(
                invoice_number=invoice_number,
                status=STATUS_FOR_TYPE[values["type"]],
                created_at=now,
                updated_at=now,
                **values
            )
            self.invoices_repo.add(invoice, conn=conn)
            invoice.items = self._insert_items(invoice.id, items, conn)
            if invoice.type == InvoiceType.INVOICE:
                self._decrement_stock(invoice.items, conn)
        return invoice

    def create_invoice(self, invoice_data: Dict[str, Any], items_data: List[Dict[str, Any]]) -> InvoiceEntity:
        """
        Creates an invoice or pre-invoice with its items in one transaction.

        subtotal, discount_amount and total are stored as supplied (see
        invoice_calculator.calculate_totals). Status follows the type: invoices
        are final, pre-invoices draft. Only final invoices take stock.
        """
        values = self._validate_invoice_data(invoice_data)
        items = self._validate_items(items_data)
        if "status" in invoice_data:
            logger.info(f"Ignoring supplied status '{invoice_data['status']}'; status follows the invoice type.")
        self._warn_on_total_mismatch(values["subtotal"], values["discount_amount"], values["total"])

        logger.info(f"Attempting to create {values['type'].value} for customer ID {values['customer_id']} with {len(items)} items.")
        for attempt in range(1, self.max_number_attempts + 1):
            try:
                invoice = self._insert_invoice(values, items)
                break
            except ConflictError:
                if attempt >= self.max_number_attempts:
                    logger.error(f"Giving up after {attempt} invoice number collisions.")
                    raise
                logger.warning(f"Invoice number collision on attempt {attempt}; retrying.")

        logger.info(f"{invoice.type.value} #{invoice.invoice_number} (ID: {invoice.id}) created with total {invoice.total}.")
        return self.get_invoice(invoice.id)

    def _reject_lifecycle_change(self, invoice: InvoiceEntity, invoice_data: Dict[str, Any]) -> None:
        current = {"type": invoice.type, "status": invoice.status}
        enum_for = {"type": InvoiceType, "status": InvoiceStatus}
        errors: Dict[str, str] = {}
        for name in LIFECYCLE_FIELDS:
            if name not in invoice_data:
                continue
            try:
                requested = enum_for[name](invoice_data[name])
            except ValueError:
                errors[name] = "مقدار نامعتبر است."
                continue
            if requested != current[name]:
                errors[name] = "نوع یا وضعیت فاکتور با ویرایش تغییر نمی‌کند؛ از تبدیل پیش‌فاکتور استفاده کنید."
        if errors:
            logger.error(f"Rejected type/status change on invoice ID {invoice.id}: {errors}")
            raise ValidationError("تغییر نوع یا وضعیت فاکتور مجاز نیست.", errors)

    def update_invoice(self, invoice_id: int, invoice_data: Dict[str, Any],
                       items_data: Optional[List[Dict[str, Any]]] = None) -> InvoiceEntity:
        """
        Updates header fields and, when items_data is given (even empty), replaces
        every item. Stock is not reconciled.
        """
        logger.info(f"Attempting to update invoice ID {invoice_id} with data: {invoice_data}")
        if not isinstance(invoice_data, dict):
            raise ValidationError("اطلاعات فاکتور نامعتبر است.", {"invoice": "اطلاعات فاکتور باید یک دیکشنری باشد."})
        unknown = [key for key in invoice_data if key not in UPDATABLE_FIELDS + LIFECYCLE_FIELDS]
        if unknown:
            raise ValidationError("اطلاعات فاکتور نامعتبر است.",
                                  {key: "این فیلد قابل ویرایش نیست." for key in unknown})
        values = self._validate_invoice_data(
            {key: value for key, value in invoice_data.items() if key in UPDATABLE_FIELDS}, partial=True)
        items = self._validate_items(items_data) if items_data is not None else None

        with self.db_manager.transaction() as conn:
            invoice = self.invoices_repo.get_by_id(invoice_id, conn=conn)
            if invoice is None:
                logger.error(f"Invoice with ID {invoice_id} not found for update.")
                raise NotFoundError("فاکتور", invoice_id, "فاکتور برای ویرایش یافت نشد.")
            self._reject_lifecycle_change(invoice, invoice_data)
            self._require_references(conn, customer_id=values.get("customer_id"), items=items)

            changes = dict(values)
            changes["updated_at"] = self.clock()
            self.invoices_repo.update_fields(invoice_id, changes, conn=conn)
            if items is not None:
                removed = self.invoice_items_repo.delete_by_invoice_id(invoice_id, conn=conn)
                self._insert_items(invoice_id, items, conn)
                logger.debug(f"Replaced {removed} item(s) of invoice ID {invoice_id} with {len(items)}.")

        self._warn_on_total_mismatch(values.get("subtotal", invoice.subtotal),
                                     values.get("discount_amount", invoice.discount_amount),
                                     values.get("total", invoice.total))
        logger.info(f"Invoice ID {invoice_id} updated successfully.")
        return self.get_invoice(invoice_id)

    def delete_invoice(self, invoice_id: int) -> bool:
        """Deletes the invoice and its items. Stock taken by the invoice is not returned."""
        logger.warning(f"Attempting to delete invoice ID: {invoice_id}.")
        with self.db_manager.transaction() as conn:
            self.invoice_items_repo.delete_by_invoice_id(invoice_id, conn=conn)
            deleted = self.invoices_repo.delete(invoice_id, conn=conn)
        if deleted:
            logger.info(f"Invoice ID {invoice_id} deleted.")
        else:
            logger.warning(f"Invoice ID {invoice_id} not found; nothing deleted.")
        return deleted

    def convert_pre_invoice_to_invoice(self, invoice_id: int) -> InvoiceEntity:
        """Finalizes a pre-invoice in place (same id and number) and takes its items out of stock."""
        logger.info(f"Attempting to convert pre-invoice ID {invoice_id} to an invoice.")
        with self.db_manager.transaction() as conn:
            invoice = self.invoices_repo.get_by_id(invoice_id, conn=conn)
            if invoice is None or not invoice.is_pre_invoice:
                logger.error(f"Pre-invoice with ID {invoice_id} not found (found: {invoice.type.value if invoice else None}).")
                raise NotFoundError("پیش‌فاکتور", invoice_id, "پیش‌فاکتور یافت نشد.")

            self.invoices_repo.update_fields(invoice_id, {
                "type": InvoiceType.INVOICE,
                "status": InvoiceStatus.FINAL,
                "updated_at": self.clock(),
            }, conn=conn)
            items = self.invoice_items_repo.get_by_invoice_id(invoice_id, conn=conn)
            self._decrement_stock(items, conn)

        logger.info(f"Pre-invoice #{invoice.invoice_number} (ID: {invoice_id}) converted to an invoice.")
        return self.get_invoice(invoice_id)

    # --- Reads ---

    def _hydrate(self, invoice: InvoiceEntity,
                 product_cache: Optional[Dict[int, Any]] = None) -> InvoiceEntity:
        """Attaches the customer, the items and each item's product. Deleted records hydrate as None."""
        product_cache = {} if product_cache is None else product_cache
        invoice.customer = self.customer_manager.get_customer_by_id(invoice.customer_id)
        invoice.items = self.invoice_items_repo.get_by_invoice_id(invoice.id)
        for item in invoice.items:
            if item.product_id not in product_cache:
                product_cache[item.product_id] = self.product_manager.get_product_by_id(item.product_id)
            item.product = product_cache[item.product_id]
        return invoice

    def get_invoice(self, invoice_id: int) -> InvoiceEntity:
        logger.debug(f"Fetching invoice with items for ID: {invoice_id}")
        invoice = self.invoices_repo.get_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError("فاکتور", invoice_id, "فاکتور یافت نشد.")
        return self._hydrate(invoice)

    def get_invoices(self,
                     invoice_type: Union[InvoiceType, str, None] = None,
                     customer_id: Optional[int] = None,
                     start_date: DateBound = None,
                     end_date: DateBound = None,
                     search: Optional[str] = None,
                     limit: Optional[int] = None) -> List[InvoiceEntity]:
        """Invoices matching every given filter, newest first. Date bounds are inclusive."""
        if invoice_type is not None:
            try:
                invoice_type = InvoiceType(invoice_type)
            except ValueError as e:
                raise ValidationError("نوع فاکتور نامعتبر است.", {"type": "نوع فاکتور نامعتبر است."}) from e
        if customer_id is not None and not _is_positive_int(customer_id):
            raise ValidationError("مشتری نامعتبر است.", {"customer_id": "شناسه مشتری نامعتبر است."})
        if limit is not None and (not isinstance(limit, int) or limit < 0):
            raise ValidationError("تعداد نامعتبر است.", {"limit": "تعداد باید عدد صحیح نامنفی باشد."})
        start = normalize_date_bound(start_date, "start_date")
        end = normalize_date_bound(end_date, "end_date", end=True)

        invoices = self.invoices_repo.find_filtered(
            invoice_type=invoice_type,
            customer_id=customer_id,
            start=start,
            end=end,
            number_search=search.strip() if search else None,
            limit=limit,
        )
        product_cache: Dict[int, Any] = {}
        return [self._hydrate(invoice, product_cache) for invoice in invoices]
