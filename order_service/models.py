from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, CheckConstraint, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from common.db import Base, utcnow
from common.ids import generate_id, generate_order_reference
from order_service.schemas import CustomerSnapshot, OrderSnapshot, ProductSnapshot

ORDER_STATUSES = ("pending", "processing", "completed", "failed", "cancelled")
PAYMENT_STATUSES = ("pending", "processing", "paid", "failed")


def _one_of(column: str, values) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_orders_quantity_positive"),
        CheckConstraint("amount >= 0", name="ck_orders_amount_non_negative"),
        CheckConstraint(_one_of("order_status", ORDER_STATUSES), name="ck_orders_order_status"),
        CheckConstraint(_one_of("payment_status", PAYMENT_STATUSES), name="ck_orders_payment_status"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    order_id: Mapped[str] = mapped_column(String(32), unique=True, index=True, default=generate_order_reference)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    # unit price; the total is derived
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN", nullable=False)
    order_status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False, index=True)
    payment_status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)
    payment_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    customer_info: Mapped[dict] = mapped_column(JSON, nullable=False)
    product_info: Mapped[dict] = mapped_column(JSON, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def total_amount(self) -> Decimal:
        return Decimal(self.amount) * self.quantity

    @property
    def customer(self) -> CustomerSnapshot:
        return CustomerSnapshot.model_validate(self.customer_info)

    @property
    def product(self) -> ProductSnapshot:
        return ProductSnapshot.model_validate(self.product_info)

    def snapshot(self) -> OrderSnapshot:
        return OrderSnapshot(
            customer_id=self.customer_id,
            order_id=self.order_id,
            product_id=self.product_id,
            quantity=self.quantity,
            amount=float(self.amount),
            total_amount=float(self.total_amount),
            currency=self.currency,
            order_status=self.order_status,
            payment_status=self.payment_status,
            created_at=self.created_at,
        )

    def to_dict(self):
        return {
            "id": self.id,
            **self.snapshot().model_dump(by_alias=True, mode="json"),
            "paymentId": self.payment_id,
            "customerInfo": self.customer.model_dump(),
            "productInfo": self.product.model_dump(),
            "notes": self.notes,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
