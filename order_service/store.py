import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select

from common.db import Database
from order_service.models import Order
from order_service.schemas import CustomerSnapshot, ProductSnapshot

logger = logging.getLogger("order_store")

# statuses only move forward
ORDER_TRANSITIONS = {
    "pending": {"processing", "failed", "cancelled"},
    "processing": {"completed", "failed", "cancelled"},
    "completed": set(),
    "failed": set(),
    "cancelled": set(),
}


class InvalidTransition(Exception):
    def __init__(self, order_id: str, current: str, target: str):
        super().__init__(f"Order {order_id} cannot move from {current} to {target}")
        self.order_id = order_id
        self.current = current
        self.target = target


class OrderStore:
    def __init__(self, db: Database):
        self.db = db

    def create_schema(self) -> None:
        self.db.create_all([Order.__table__])

    def create(self, customer_id: str, product_id: str, quantity: int, amount: Decimal, currency: str,
               customer: CustomerSnapshot, product: ProductSnapshot) -> Order:
        """Persist a new pending/pending order under a fresh reference."""
        with self.db.session() as session:
            order = Order(
                customer_id=customer_id,
                product_id=product_id,
                quantity=quantity,
                amount=amount,
                currency=currency,
                order_status="pending",
                payment_status="pending",
                customer_info=customer.model_dump(),
                product_info=product.model_dump(),
            )
            session.add(order)
        logger.info("Order %s saved (pending)", order.order_id)
        return order

    def mark_processing(self, id: str, payment_id: str) -> Order:
        with self.db.session() as session:
            order = session.get(Order, id)
            if "processing" not in ORDER_TRANSITIONS[order.order_status]:
                raise InvalidTransition(order.order_id, order.order_status, "processing")
            order.payment_id = payment_id
            order.order_status = "processing"
            order.payment_status = "processing"
        return order

    def get(self, id: str) -> Optional[Order]:
        with self.db.session() as session:
            return session.get(Order, id)

    def get_by_reference(self, order_id: str) -> Optional[Order]:
        with self.db.session() as session:
            return session.scalar(select(Order).where(Order.order_id == order_id))

    def list(self, customer_id: Optional[str] = None, order_status: Optional[str] = None,
             limit: int = 50) -> List[Order]:
        stmt = select(Order).order_by(Order.created_at.desc()).limit(limit)
        if customer_id:
            stmt = stmt.where(Order.customer_id == customer_id)
        if order_status:
            stmt = stmt.where(Order.order_status == order_status)
        with self.db.session() as session:
            return list(session.scalars(stmt))
