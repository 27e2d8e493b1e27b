"""
Payment Model — Payment Service
Status: pending | processing | completed | failed
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from common.db import Base, utcnow
from common.ids import generate_id, generate_transaction_reference


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN", nullable=False)
    payment_status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False, index=True)
    payment_method: Mapped[str] = mapped_column(String(16), default="card", nullable=False)
    transaction_reference: Mapped[str] = mapped_column(
        String(40), unique=True, nullable=False, default=generate_transaction_reference
    )
    payment_gateway: Mapped[str] = mapped_column(String(32), default="demo_gateway", nullable=False)
    initiated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    attempt_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self, detailed: bool = False):
        data = {
            "id": self.id,
            "customerId": self.customer_id,
            "orderId": self.order_id,
            "amount": float(self.amount),
            "currency": self.currency,
            "paymentStatus": self.payment_status,
            "transactionReference": self.transaction_reference,
            "paymentMethod": self.payment_method,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if detailed:
            data.update({
                "productId": self.product_id,
                "paymentGateway": self.payment_gateway,
                "processingDetails": {
                    "initiatedAt": self.initiated_at.isoformat() if self.initiated_at else None,
                    "completedAt": self.completed_at.isoformat() if self.completed_at else None,
                    "attemptCount": self.attempt_count,
                    "lastError": self.last_error,
                },
                "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            })
        return data
