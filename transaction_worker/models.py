from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from common.db import Base, utcnow


class TransactionHistory(Base):
    __tablename__ = "transaction_history"
    __table_args__ = (
        Index("ix_transaction_history_customer_time", "customer_id", "timestamp"),
        Index("ix_transaction_history_order_time", "order_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN", nullable=False)
    # one row per payment, whatever the number of deliveries
    transaction_reference: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    payment_method: Mapped[str] = mapped_column(String(16), default="card", nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    metadata_: Mapped[dict] = mapped_column("metadata", JSON, default=dict)

