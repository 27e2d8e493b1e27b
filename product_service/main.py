"""
ProductService — product lookups, availability checks and stock movements.

Every stock change goes through StockLedger; the routes here only translate
ledger outcomes into HTTP responses.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Query, Request
from pydantic import BaseModel, Field

from common import web
from common.db import Database
from product_service import config
from product_service.ledger import StockError, StockLedger
from product_service.store import ProductStore

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("product_service")


class DeductStockRequest(BaseModel):
    quantity: int = Field(ge=1)
    orderId: str = Field(min_length=1)


class RestoreStockRequest(BaseModel):
    quantity: int = Field(ge=1)
    orderId: Optional[str] = None
    reason: Optional[str] = None


def create_app(database: Optional[Database] = None, seed: bool = config.SEED_DATA) -> FastAPI:
    db = database or Database(config.DATABASE_URL)
    store = ProductStore(db)
    ledger = StockLedger(db)
    store.create_schema()
    if seed:
        store.seed()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if database is None:
            db.dispose()

    app = FastAPI(title="Product Service", lifespan=lifespan)
    app.state.store = store
    app.state.ledger = ledger
    web.install(app, logger)

    @app.get("/health")
    def health():
        return {
            "status": "success",
            "service": "product-service",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "connected" if db.ping() else "disconnected",
        }

    @app.get("/products/{product_id}/availability")
    def check_availability(product_id: str, quantity: int = Query(1, ge=1)):
        logger.info(f"Checking availability for product: {product_id}")
        try:
            availability = ledger.check_availability(product_id, quantity)
        except StockError as e:
            return web.fail(e.status_code, e.message)

        return {
            "status": "success",
            "data": {
                "productId": availability.product_id,
                "name": availability.name,
                "isAvailable": availability.can_fulfill,
                "availableStock": availability.available_stock,
                "requestedQuantity": availability.requested_quantity,
                "canFulfill": availability.can_fulfill,
            },
        }

    @app.get("/products/{product_id}")
    def get_product(product_id: str):
        logger.info(f"Fetching product with ID: {product_id}")
        product = store.get(product_id)
        if not product:
            logger.warning(f"Product not found: {product_id}")
            return web.fail(404, "Product not found")
        if not product.is_available:
            logger.warning(f"Unavailable product accessed: {product_id}")
        return {"status": "success", "data": {"product": product.to_dict()}}

    @app.get("/products")
    def list_products(category: Optional[str] = None, isAvailable: Optional[bool] = None,
                      minPrice: Optional[float] = None, maxPrice: Optional[float] = None,
                      inStock: bool = False):
        products = store.list(category=category, is_available=isAvailable,
                              min_price=minPrice, max_price=maxPrice, in_stock=inStock)
        return {
            "status": "success",
            "results": len(products),
            "data": {"products": [p.to_dict() for p in products]},
        }

    @app.post("/products/{product_id}/deduct-stock")
    def deduct_stock(request: Request, product_id: str, body: DeductStockRequest):
        correlation_id = request.state.correlation_id
        logger.info(
            f"Deducting stock for product {product_id}: qty {body.quantity}, "
            f"order {body.orderId}, correlation {correlation_id}"
        )
        try:
            change = ledger.deduct(product_id, body.quantity, body.orderId)
        except StockError as e:
            return web.fail(e.status_code, e.message)

        return {
            "status": "success",
            "message": "Stock deducted successfully",
            "data": {
                "productId": change.product_id,
                "name": change.name,
                "previousStock": change.previous_stock,
                "newStock": change.new_stock,
                "quantityDeducted": change.quantity,
                "stockStatus": change.stock_status,
                "isInStock": change.is_in_stock,
            },
        }

    @app.post("/products/{product_id}/restore-stock")
    def restore_stock(product_id: str, body: RestoreStockRequest):
        logger.info(f"Restoring stock for product {product_id}: qty {body.quantity}, reason {body.reason}")
        try:
            change = ledger.restore(product_id, body.quantity, body.orderId, body.reason)
        except StockError as e:
            return web.fail(e.status_code, e.message)

        return {
            "status": "success",
            "message": "Stock restored successfully",
            "data": {
                "productId": change.product_id,
                "name": change.name,
                "previousStock": change.previous_stock,
                "newStock": change.new_stock,
                "quantityRestored": change.quantity,
            },
        }

    return app


if __name__ == "__main__":
    uvicorn.run("product_service.main:create_app", factory=True, host="0.0.0.0", port=config.PORT)
