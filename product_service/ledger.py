"""
StockLedger — the only code path that changes a product's stock.

A deduction is a single conditional UPDATE:

    UPDATE products
       SET stock = stock - :qty,
           is_available = CASE WHEN stock - :qty <= 0 THEN false ELSE is_available END
     WHERE id = :id AND stock >= :qty AND is_available

The database evaluates the predicate and the write atomically, so two orders
racing for the last units of a SKU can never both succeed. Nothing here reads
the stock first and writes it back afterwards. Only when the UPDATE matches no
row do we read the product, to explain why.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from common.db import Database, utcnow
from product_service.models import Product

logger = logging.getLogger("stock_ledger")


class StockError(Exception):
    status_code = 400

    def __init__(self, message: str, product_id: str):
        super().__init__(message)
        self.message = message
        self.product_id = product_id


class ProductNotFound(StockError):
    status_code = 404

    def __init__(self, product_id: str):
        super().__init__("Product not found", product_id)


class ProductUnavailable(StockError):
    def __init__(self, product_id: str):
        super().__init__("Product is not available", product_id)


class InsufficientStock(StockError):
    def __init__(self, product_id: str, available: int, requested: int):
        super().__init__(f"Insufficient stock. Available: {available}, Requested: {requested}", product_id)
        self.available = available
        self.requested = requested


@dataclass(frozen=True)
class StockChange:
    product_id: str
    name: str
    previous_stock: int
    new_stock: int
    quantity: int
    stock_status: str
    is_in_stock: bool


@dataclass(frozen=True)
class Availability:
    product_id: str
    name: str
    can_fulfill: bool
    available_stock: int
    requested_quantity: int


class StockLedger:
    def __init__(self, db: Database):
        self.db = db

    def deduct(self, product_id: str, quantity: int, order_ref: str) -> StockChange:
        """Take `quantity` units off the product, or raise a StockError."""
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        remaining = Product.stock - quantity
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.stock >= quantity,
                Product.is_available.is_(True),
            )
            .values(
                stock=remaining,
                is_available=case((remaining <= 0, False), else_=Product.is_available),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        with self.db.session() as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                raise self._explain_rejection(session, product_id, quantity, order_ref)
            # our own write is visible and still locked until commit
            product = self._load(session, product_id)
            change = self._change(product, previous=product.stock + quantity, quantity=quantity)

        logger.info(
            "Stock deducted for product %s: %d -> %d (qty %d, order %s)",
            product_id, change.previous_stock, change.new_stock, quantity, order_ref,
        )
        return change

    def restore(self, product_id: str, quantity: int, order_ref: Optional[str] = None,
                reason: Optional[str] = None) -> StockChange:
        """
        Unconditionally add `quantity` units back (cancellations, refunds).

        Not idempotent: each call increments again, callers must make sure a
        given order is restored at most once. Availability is left as is.
        """
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        with self.db.session() as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                logger.warning("Product not found for stock restoration: %s", product_id)
                raise ProductNotFound(product_id)
            product = self._load(session, product_id)
            change = self._change(product, previous=product.stock - quantity, quantity=quantity)

        logger.info(
            "Stock restored for product %s: %d -> %d (qty %d, order %s, reason %s)",
            product_id, change.previous_stock, change.new_stock, quantity, order_ref, reason,
        )
        return change

    def check_availability(self, product_id: str, quantity: int = 1) -> Availability:
        """Read-only: can `quantity` units be fulfilled right now?"""
        with self.db.session() as session:
            product = session.get(Product, product_id)
            if product is None:
                raise ProductNotFound(product_id)
            return Availability(
                product_id=product.id,
                name=product.name,
                can_fulfill=product.is_available and product.stock >= quantity,
                available_stock=product.stock,
                requested_quantity=quantity,
            )

    @staticmethod
    def _load(session: Session, product_id: str) -> Product:
        return session.scalars(
            select(Product).where(Product.id == product_id).execution_options(populate_existing=True)
        ).one()

    @staticmethod
    def _change(product: Product, previous: int, quantity: int) -> StockChange:
        return StockChange(
            product_id=product.id,
            name=product.name,
            previous_stock=previous,
            new_stock=product.stock,
            quantity=quantity,
            stock_status=product.stock_status,
            is_in_stock=product.is_in_stock,
        )

    @staticmethod
    def _explain_rejection(session: Session, product_id: str, quantity: int, order_ref: str) -> StockError:
        product = session.get(Product, product_id)
        if product is None:
            logger.warning("Product not found for stock deduction: %s", product_id)
            return ProductNotFound(product_id)
        if not product.is_available:
            logger.warning("Product unavailable for stock deduction: %s", product_id)
            return ProductUnavailable(product_id)
        logger.warning(
            "Insufficient stock for deduction: product %s, requested %d, available %d, order %s",
            product_id, quantity, product.stock, order_ref,
        )
        return InsufficientStock(product_id, available=product.stock, requested=quantity)
