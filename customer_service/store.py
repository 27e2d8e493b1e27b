import logging
from typing import List, Optional

from sqlalchemy import func, select

from common.db import Database
from customer_service.models import Customer

logger = logging.getLogger("customer_store")

SAMPLE_CUSTOMERS = [
    {
        "first_name": "Nelson",
        "last_name": "Enyinnaya",
        "email": "nelson.enyinnaya@example.com",
        "phone": "+234-801-234-5678",
        "address": {"street": "15 Victoria Island Road", "city": "Lagos", "state": "Lagos", "country": "Nigeria"},
    },
    {
        "first_name": "Ada",
        "last_name": "Okonkwo",
        "email": "ada.okonkwo@example.com",
        "phone": "+234-802-345-6789",
        "address": {"street": "25 Lekki Phase 1", "city": "Lagos", "state": "Lagos", "country": "Nigeria"},
    },
    {
        "first_name": "Fatima",
        "last_name": "Mohammed",
        "email": "fatima.mohammed@example.com",
        "phone": "+234-804-567-8901",
        "address": {"street": "12 Ahmadu Bello Way", "city": "Abuja", "state": "FCT", "country": "Nigeria"},
        "is_active": False,
    },
]


class CustomerStore:
    def __init__(self, db: Database):
        self.db = db

    def create_schema(self) -> None:
        self.db.create_all([Customer.__table__])

    def add(self, **fields) -> Customer:
        with self.db.session() as session:
            customer = Customer(**fields)
            session.add(customer)
        return customer

    def get(self, customer_id: str) -> Optional[Customer]:
        with self.db.session() as session:
            return session.get(Customer, customer_id)

    def list(self, is_active: Optional[bool] = None) -> List[Customer]:
        stmt = select(Customer).order_by(Customer.created_at.desc())
        if is_active is not None:
            stmt = stmt.where(Customer.is_active.is_(is_active))
        with self.db.session() as session:
            return list(session.scalars(stmt))

    def seed(self) -> int:
        """Insert the sample customers into an empty table."""
        with self.db.session() as session:
            if session.scalar(select(func.count()).select_from(Customer)):
                return 0
            session.add_all(Customer(**row) for row in SAMPLE_CUSTOMERS)
        logger.info("Seeded %d customers", len(SAMPLE_CUSTOMERS))
        return len(SAMPLE_CUSTOMERS)
