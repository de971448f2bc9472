# invoicing/business_logic/product_manager.py
from typing import Optional, List, Any, Dict, Callable, TYPE_CHECKING
from datetime import datetime
import sqlite3

from invoicing.business_logic.entities.product_entity import ProductEntity
from invoicing.business_logic.invoice_calculator import parse_money
from invoicing.config import ALLOW_NEGATIVE_STOCK, LOW_STOCK_THRESHOLD
from invoicing.constants import SQLITE_MAX_INTEGER
from invoicing.exceptions import InsufficientStockError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from invoicing.data_access.products_repository import ProductsRepository

import logging

logger = logging.getLogger(__name__)


class ProductManager:
    def __init__(self, product_repository: 'ProductsRepository',
                 allow_negative_stock: bool = ALLOW_NEGATIVE_STOCK,
                 low_stock_threshold: int = LOW_STOCK_THRESHOLD,
                 clock: Callable[[], datetime] = datetime.now):
        if product_repository is None:
            raise ValueError("product_repository cannot be None")
        self.product_repo = product_repository
        self.allow_negative_stock = allow_negative_stock
        self.low_stock_threshold = low_stock_threshold
        self.clock = clock

    def get_product_by_id(self, product_id: int,
                          conn: Optional[sqlite3.Connection] = None) -> Optional[ProductEntity]:
        """Fetches a product by ID, or None."""
        logger.debug(f"Fetching product by ID: {product_id}")
        product = self.product_repo.get_by_id(product_id, conn=conn)
        if not product:
            logger.warning(f"Product with ID {product_id} not found.")
        return product

    def require_product(self, product_id: int,
                        conn: Optional[sqlite3.Connection] = None) -> ProductEntity:
        product = self.get_product_by_id(product_id, conn=conn)
        if product is None:
            raise NotFoundError("کالا", product_id, "کالا یافت نشد.")
        return product

    def get_products(self, search: Optional[str] = None) -> List[ProductEntity]:
        if search:
            return self.product_repo.search_by_name(search)
        return self.product_repo.get_all(order_by="name ASC")

    def create_product(self,
                       name: str,
                       sale_price: Any,
                       quantity: int = 0,
                       purchase_price: Any = None,
                       description: Optional[str] = None) -> ProductEntity:
        errors: Dict[str, str] = {}
        if not isinstance(name, str) or not name.strip():
            errors["name"] = "نام کالا نمی‌تواند خالی باشد."
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            errors["quantity"] = "موجودی باید عدد صحیح باشد."
        elif abs(quantity) > SQLITE_MAX_INTEGER:
            errors["quantity"] = "موجودی خارج از محدوده مجاز است."
        sale_price_dec = parse_money(sale_price, "sale_price", errors)
        purchase_price_dec = None
        if purchase_price is not None:
            purchase_price_dec = parse_money(purchase_price, "purchase_price", errors)
        if errors:
            logger.error(f"Invalid product data for '{name}': {errors}")
            raise ValidationError("اطلاعات وارد شده نامعتبر است.", errors)

        product_entity = ProductEntity(
            name=name.strip(),
            sale_price=sale_price_dec,
            quantity=quantity,
            purchase_price=purchase_price_dec,
            description=description,
            created_at=self.clock(),
        )
        created_product = self.product_repo.add(product_entity)
        logger.info(f"Product '{created_product.name}' (ID: {created_product.id}) created successfully.")
        return created_product

    def update_product(self, product_id: int, update_data: Dict[str, Any]) -> ProductEntity:
        """Updates a product's descriptive fields and prices. Stock changes go through adjust_quantity."""
        logger.info(f"Attempting to update product ID: {product_id} with data: {update_data}")
        product_to_update = self.require_product(product_id)

        changes: Dict[str, Any] = {}
        errors: Dict[str, str] = {}
        for key, value in update_data.items():
            if key == "quantity":
                logger.warning(f"Attempt to update 'quantity' via update_product for product ID {product_id} was ignored. Use adjust_quantity.")
                continue
            if key in ("sale_price", "purchase_price"):
                value = None if value is None and key == "purchase_price" else parse_money(value, key, errors)
            elif key == "name":
                if not isinstance(value, str) or not value.strip():
                    errors["name"] = "نام کالا نمی‌تواند خالی باشد."
                    continue
                value = value.strip()
            elif key != "description":
                errors[key] = "این فیلد قابل ویرایش نیست."
                continue
            changes[key] = value
        if errors:
            raise ValidationError("اطلاعات وارد شده نامعتبر است.", errors)

        if changes:
            self.product_repo.update_fields(product_id, changes)
            for key, value in changes.items():
                setattr(product_to_update, key, value)
            logger.info(f"Product ID {product_id} updated successfully.")
        else:
            logger.info(f"No changes detected for product ID {product_id}. Update not performed.")
        return product_to_update

    def delete_product(self, product_id: int) -> bool:
        logger.warning(f"Attempting to delete product ID: {product_id}.")
        return self.product_repo.delete(product_id)

    def adjust_quantity(self, product_id: int, delta: int,
                        conn: Optional[sqlite3.Connection] = None) -> None:
        """
        Applies quantity += delta atomically (delta is negative for sales).

        The arithmetic happens inside one UPDATE statement, so concurrent sales of
        the same product never overwrite each other.
        """
        logger.debug(f"Adjusting quantity for product ID {product_id} by {delta}")
        changed = self.product_repo.adjust_quantity(
            product_id, delta, allow_negative=self.allow_negative_stock, conn=conn)
        if changed:
            if delta < 0 and self.allow_negative_stock:
                product = self.product_repo.get_by_id(product_id, conn=conn)
                if product and product.quantity < 0:
                    logger.warning(f"Product '{product.name}' (ID: {product_id}) is oversold; quantity is now {product.quantity}.")
            logger.info(f"Quantity for product ID {product_id} adjusted by {delta}.")
            return

        if self.product_repo.get_by_id(product_id, conn=conn) is None:
            logger.error(f"Cannot adjust quantity: Product with ID {product_id} not found.")
            raise NotFoundError("کالا", product_id, "کالا یافت نشد.")
        logger.error(f"Refused to take product ID {product_id} below zero (delta {delta}).")
        raise InsufficientStockError(product_id, -delta)

    def get_low_stock_products(self) -> List[ProductEntity]:
        return self.product_repo.get_low_stock(self.low_stock_threshold)

    def count_low_stock_products(self) -> int:
        return self.product_repo.count_low_stock(self.low_stock_threshold)

    def get_top_selling_products(self, limit: int) -> List[Dict[str, Any]]:
        return self.product_repo.get_top_selling(limit)
