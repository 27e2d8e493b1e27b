from typing import List, Optional

from sqlalchemy import select

from common.db import Database, utcnow
from payment_service.models import Payment


class PaymentStore:
    def __init__(self, db: Database):
        self.db = db

    def create_schema(self) -> None:
        self.db.create_all([Payment.__table__])

    def create(self, **fields) -> Payment:
        with self.db.session() as session:
            payment = Payment(payment_status="processing", initiated_at=utcnow(), **fields)
            session.add(payment)
        return payment

    def get(self, payment_id: str) -> Optional[Payment]:
        with self.db.session() as session:
            return session.get(Payment, payment_id)

    def mark_completed(self, payment_id: str) -> Payment:
        with self.db.session() as session:
            payment = session.get(Payment, payment_id)
            payment.payment_status = "completed"
            payment.completed_at = utcnow()
        return payment

    def mark_failed(self, payment_id: str, error: str) -> Payment:
        with self.db.session() as session:
            payment = session.get(Payment, payment_id)
            payment.payment_status = "failed"
            payment.last_error = error
        return payment

    def list(self, customer_id: Optional[str] = None, payment_status: Optional[str] = None,
             order_id: Optional[str] = None, limit: int = 100) -> List[Payment]:
        stmt = select(Payment).order_by(Payment.created_at.desc()).limit(limit)
        if customer_id:
            stmt = stmt.where(Payment.customer_id == customer_id)
        if payment_status:
            stmt = stmt.where(Payment.payment_status == payment_status)
        if order_id:
            stmt = stmt.where(Payment.order_id == order_id)
        with self.db.session() as session:
            return list(session.scalars(stmt))
