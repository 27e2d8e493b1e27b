"""
OrderOrchestrator — runs the order-fulfillment saga.

    validate customer -> validate product + availability -> price
      -> persist (pending/pending) -> initiate payment
      -> on success: processing/processing, then deduct stock
      -> return the order snapshot

Nothing is persisted until both validations pass. Once the order exists the
caller always gets it back: a failed payment leaves it pending, and a failed
stock deduction after payment is only logged.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Optional

from order_service.client import ServiceClient
from order_service.models import Order
from order_service.schemas import CustomerSnapshot, ProductSnapshot
from order_service.store import OrderStore

logger = logging.getLogger("order_orchestrator")


class OrderRejected(Exception):
    """A validation step refused the order; nothing was persisted."""

    def __init__(self, reason: str, kind: str):
        super().__init__(reason)
        self.reason = reason
        self.kind = kind


class OrderOrchestrator:
    def __init__(self, client: ServiceClient, store: OrderStore):
        self.client = client
        self.store = store

    async def create_order(self, customer_id: str, product_id: str, quantity: int = 1,
                           correlation_id: Optional[str] = None) -> Order:
        logger.info(f"Creating order: customer {customer_id}, product {product_id}, quantity {quantity}")

        customer_check = await self.client.validate_customer(customer_id, correlation_id)
        if not customer_check.is_valid:
            logger.warning(f"Customer validation failed for {customer_id}: {customer_check.error}")
            raise OrderRejected(customer_check.error, "customer")

        product_check = await self.client.validate_product(product_id, quantity, correlation_id)
        if not product_check.is_valid:
            logger.warning(f"Product validation failed for {product_id}: {product_check.error}")
            raise OrderRejected(product_check.error, "product")

        customer = customer_check.customer
        product = product_check.product
        unit_price = Decimal(str(product["price"]))
        total = unit_price * quantity
        currency = product.get("currency") or "NGN"

        order = await asyncio.to_thread(
            self.store.create,
            customer_id=customer_id,
            product_id=product_id,
            quantity=quantity,
            amount=unit_price,
            currency=currency,
            customer=CustomerSnapshot(email=customer["email"], name=customer["fullName"]),
            product=ProductSnapshot(name=product["name"], sku=product["sku"], price=float(unit_price)),
        )
        logger.info(f"Order created: {order.order_id}")

        payment = await self.client.initiate_payment(
            customer_id, order.order_id, total, currency, product_id, correlation_id
        )
        if not payment.success:
            # order stays pending/pending; the caller still gets it back
            logger.error(f"Payment initiation failed for order {order.order_id}: {payment.error}")
            return order

        order = await asyncio.to_thread(self.store.mark_processing, order.id, payment.payment["id"])
        logger.info(f"Payment initiated for order {order.order_id}")

        deduction = await self.client.deduct_stock(product_id, quantity, order.order_id, correlation_id)
        if deduction.success:
            logger.info(f"Stock deducted for order {order.order_id}: {deduction.data}")
        else:
            logger.error(
                f"Stock deduction failed for order {order.order_id} after payment, "
                f"no compensation performed: {deduction.error}"
            )

        return order
