"""
CustomerService — looks up customers for the order saga.

GET /customers/{id} answers 404 for unknown ids and 403 for inactive
accounts, which the order service turns into distinct rejection reasons.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI

from common import web
from common.db import Database
from customer_service import config
from customer_service.store import CustomerStore

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("customer_service")


def create_app(database: Optional[Database] = None, seed: bool = config.SEED_DATA) -> FastAPI:
    db = database or Database(config.DATABASE_URL)
    store = CustomerStore(db)
    store.create_schema()
    if seed:
        store.seed()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if database is None:
            db.dispose()

    app = FastAPI(title="Customer Service", lifespan=lifespan)
    app.state.store = store
    web.install(app, logger)

    @app.get("/health")
    def health():
        return {
            "status": "success",
            "service": "customer-service",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "connected" if db.ping() else "disconnected",
        }

    @app.get("/customers/{customer_id}")
    def get_customer(customer_id: str):
        logger.info(f"Fetching customer with ID: {customer_id}")
        customer = store.get(customer_id)

        if not customer:
            logger.warning(f"Customer not found: {customer_id}")
            return web.fail(404, "Customer not found")

        if not customer.is_active:
            logger.warning(f"Inactive customer accessed: {customer_id}")
            return web.fail(403, "Customer account is inactive")

        return {"status": "success", "data": {"customer": customer.to_dict()}}

    @app.get("/customers")
    def list_customers(isActive: Optional[bool] = None):
        customers = store.list(is_active=isActive)
        return {
            "status": "success",
            "results": len(customers),
            "data": {"customers": [c.to_dict() for c in customers]},
        }

    return app


if __name__ == "__main__":
    uvicorn.run("customer_service.main:create_app", factory=True, host="0.0.0.0", port=config.PORT)
