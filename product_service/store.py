import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select

from common.db import Database
from product_service.models import Product

logger = logging.getLogger("product_store")

SAMPLE_PRODUCTS = [
    {
        "name": "Samsung Galaxy S24 Ultra",
        "description": "Flagship smartphone with 200MP camera and 6.8\" AMOLED display.",
        "price": Decimal("1850000"),
        "currency": "NGN",
        "category": "Electronics",
        "stock": 25,
        "sku": "ELEC-SAMS24U-256",
        "brand": "Samsung",
    },
    {
        "name": "Apple MacBook Air M3",
        "description": "Thin and light laptop powered by the Apple M3 chip.",
        "price": Decimal("2100000"),
        "currency": "NGN",
        "category": "Electronics",
        "stock": 15,
        "sku": "ELEC-MBAM3-256",
        "brand": "Apple",
    },
    {
        "name": "Nike Air Max 270",
        "description": "Lifestyle running shoe with a large Air unit in the heel.",
        "price": Decimal("150.00"),
        "currency": "USD",
        "category": "Fashion",
        "stock": 2,
        "sku": "FASH-NAM270-42",
        "brand": "Nike",
    },
]


class ProductStore:
    """Read side of the product catalogue; stock changes go through StockLedger."""

    def __init__(self, db: Database):
        self.db = db

    def create_schema(self) -> None:
        self.db.create_all([Product.__table__])

    def add(self, **fields) -> Product:
        if fields.get("stock") == 0:
            fields["is_available"] = False
        if "sku" in fields:
            fields["sku"] = fields["sku"].strip().upper()
        with self.db.session() as session:
            product = Product(**fields)
            session.add(product)
        return product

    def get(self, product_id: str) -> Optional[Product]:
        with self.db.session() as session:
            return session.get(Product, product_id)

    def list(self, category: Optional[str] = None, is_available: Optional[bool] = None,
             min_price: Optional[float] = None, max_price: Optional[float] = None,
             in_stock: bool = False) -> List[Product]:
        stmt = select(Product).order_by(Product.created_at.desc())
        if category:
            stmt = stmt.where(Product.category == category)
        if is_available is not None:
            stmt = stmt.where(Product.is_available.is_(is_available))
        if in_stock:
            stmt = stmt.where(Product.stock > 0, Product.is_available.is_(True))
        if min_price is not None:
            stmt = stmt.where(Product.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Product.price <= max_price)
        with self.db.session() as session:
            return list(session.scalars(stmt))

    def seed(self) -> int:
        with self.db.session() as session:
            if session.scalar(select(func.count()).select_from(Product)):
                return 0
            session.add_all(Product(**row) for row in SAMPLE_PRODUCTS)
        logger.info("Seeded %d products", len(SAMPLE_PRODUCTS))
        return len(SAMPLE_PRODUCTS)
