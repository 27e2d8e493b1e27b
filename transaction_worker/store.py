import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from common.db import Database, utcnow
from common.events import TransactionEvent
from transaction_worker.models import TransactionHistory

logger = logging.getLogger("transaction_store")


class TransactionHistoryStore:
    def __init__(self, db: Database):
        self.db = db

    def create_schema(self) -> None:
        self.db.create_all([TransactionHistory.__table__])

    def record(self, event: TransactionEvent) -> bool:
        """
        Insert the event once. Returns False when a row with the same
        transaction reference already exists; other storage errors propagate.
        """
        row = TransactionHistory(
            customer_id=event.customer_id,
            order_id=event.order_id,
            product_id=event.product_id,
            amount=Decimal(str(event.amount)),
            currency=event.currency,
            transaction_reference=event.transaction_reference,
            payment_status=event.payment_status,
            payment_method=event.payment_method,
            timestamp=event.timestamp,
            processed_at=utcnow(),
            metadata_=event.metadata,
        )
        try:
            with self.db.session() as session:
                session.add(row)
        except IntegrityError:
            if self.get(event.transaction_reference) is not None:
                return False
            raise
        return True

    def get(self, transaction_reference: str) -> Optional[TransactionHistory]:
        stmt = select(TransactionHistory).where(TransactionHistory.transaction_reference == transaction_reference)
        with self.db.session() as session:
            return session.scalars(stmt).first()

    def count(self, transaction_reference: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(TransactionHistory)
        if transaction_reference:
            stmt = stmt.where(TransactionHistory.transaction_reference == transaction_reference)
        with self.db.session() as session:
            return session.scalar(stmt)

