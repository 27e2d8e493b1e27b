"""
OrderService — accepts orders and drives them through the fulfillment saga.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Query, Request

from common import web
from common.db import Database
from order_service import config
from order_service.client import ServiceClient
from order_service.orchestrator import OrderOrchestrator, OrderRejected
from order_service.schemas import CreateOrderRequest
from order_service.store import OrderStore

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("order_service")


def create_app(database: Optional[Database] = None, client: Optional[ServiceClient] = None) -> FastAPI:
    db = database or Database(config.DATABASE_URL)
    store = OrderStore(db)
    store.create_schema()
    orchestrator = OrderOrchestrator(client or ServiceClient(), store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if database is None:
            db.dispose()

    app = FastAPI(title="Order Service", lifespan=lifespan)
    app.state.store = store
    app.state.orchestrator = orchestrator
    web.install(app, logger)

    @app.get("/health")
    def health():
        return {
            "status": "success",
            "service": "order-service",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "connected" if db.ping() else "disconnected",
        }

    @app.post("/orders", status_code=201)
    async def create_order(request: Request, order_req: CreateOrderRequest):
        correlation_id = request.state.correlation_id
        logger.info(f"Order request for customer {order_req.customerId} with correlation_id {correlation_id}")

        try:
            order = await orchestrator.create_order(
                order_req.customerId, order_req.productId, order_req.quantity, correlation_id
            )
        except OrderRejected as e:
            return web.fail(400, e.reason)

        return {
            "status": "success",
            "message": "Order created successfully",
            "data": {"order": order.snapshot().model_dump(by_alias=True, mode="json")},
        }

    @app.get("/orders/order/{order_id}")
    def get_order_by_reference(order_id: str):
        order = store.get_by_reference(order_id)
        if not order:
            return web.fail(404, "Order not found")
        return {"status": "success", "data": {"order": order.to_dict()}}

    @app.get("/orders/{id}")
    def get_order(id: str):
        order = store.get(id)
        if not order:
            return web.fail(404, "Order not found")
        return {"status": "success", "data": {"order": order.to_dict()}}

    @app.get("/orders")
    def list_orders(customerId: Optional[str] = None, orderStatus: Optional[str] = None,
                    limit: int = Query(50, ge=1, le=500)):
        orders = store.list(customer_id=customerId, order_status=orderStatus, limit=limit)
        return {
            "status": "success",
            "results": len(orders),
            "data": {"orders": [o.to_dict() for o in orders]},
        }

    return app


if __name__ == "__main__":
    uvicorn.run("order_service.main:create_app", factory=True, host="0.0.0.0", port=config.PORT)
