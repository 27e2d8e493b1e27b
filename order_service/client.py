"""
ServiceClient — bounded-timeout HTTP calls to the customer, product and
payment services.

Nothing here raises for transport or HTTP problems: every call returns an
outcome value carrying either the payload or a human-readable error, so the
orchestrator can decide what a failure means at each step.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from order_service import config

logger = logging.getLogger("service_client")

CORRELATION_HEADER = "X-Correlation-Id"


@dataclass(frozen=True)
class CustomerValidation:
    is_valid: bool
    customer: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ProductValidation:
    is_valid: bool
    product: Optional[Dict[str, Any]] = None
    availability: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    payment: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class StockDeduction:
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


def _body(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class ServiceClient:
    def __init__(
        self,
        customer_url: str = config.CUSTOMER_SERVICE_URL,
        product_url: str = config.PRODUCT_SERVICE_URL,
        payment_url: str = config.PAYMENT_SERVICE_URL,
        validation_timeout_ms: int = config.ORDER_VALIDATION_TIMEOUT_MS,
        payment_timeout_ms: int = config.ORDER_PAYMENT_TIMEOUT_MS,
        stock_timeout_ms: int = config.ORDER_STOCK_TIMEOUT_MS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.customer_url = customer_url.rstrip("/")
        self.product_url = product_url.rstrip("/")
        self.payment_url = payment_url.rstrip("/")
        # Convert ms to seconds
        self.validation_timeout = validation_timeout_ms / 1000.0
        self.payment_timeout = payment_timeout_ms / 1000.0
        self.stock_timeout = stock_timeout_ms / 1000.0
        self.transport = transport

    def _client(self, correlation_id: Optional[str]) -> httpx.AsyncClient:
        headers = {CORRELATION_HEADER: correlation_id} if correlation_id else {}
        return httpx.AsyncClient(headers=headers, transport=self.transport)

    async def validate_customer(self, customer_id: str, correlation_id: Optional[str] = None) -> CustomerValidation:
        """Customer must exist and be active."""
        url = f"{self.customer_url}/customers/{customer_id}"
        logger.info(f"Validating customer: {customer_id}")

        try:
            async with self._client(correlation_id) as client:
                response = await client.get(url, timeout=self.validation_timeout)
        except httpx.TimeoutException:
            logger.error(f"Customer service timeout for customer {customer_id}")
            return CustomerValidation(is_valid=False, error="Customer service unavailable")
        except httpx.RequestError as e:
            logger.error(f"Customer service unreachable for customer {customer_id}: {e}")
            return CustomerValidation(is_valid=False, error="Customer service unavailable")

        if response.status_code == 404:
            return CustomerValidation(is_valid=False, error="Customer not found")
        if response.status_code == 403:
            return CustomerValidation(is_valid=False, error="Customer account is inactive")
        if response.is_error:
            logger.error(f"Customer service error for customer {customer_id}: {response.status_code}")
            return CustomerValidation(is_valid=False, error="Customer service unavailable")

        body = _body(response)
        if body.get("status") != "success":
            return CustomerValidation(is_valid=False, error="Customer validation failed")

        logger.info(f"Customer validated: {customer_id}")
        return CustomerValidation(is_valid=True, customer=body["data"]["customer"])

    async def validate_product(self, product_id: str, quantity: int = 1,
                               correlation_id: Optional[str] = None) -> ProductValidation:
        """Product must exist and be able to fulfil `quantity` units right now."""
        product_url = f"{self.product_url}/products/{product_id}"
        logger.info(f"Validating product: {product_id}, quantity: {quantity}")

        try:
            async with self._client(correlation_id) as client:
                product_response = await client.get(product_url, timeout=self.validation_timeout)
                if product_response.status_code == 404:
                    return ProductValidation(is_valid=False, error="Product not found")
                if product_response.is_error:
                    logger.error(f"Product service error for product {product_id}: {product_response.status_code}")
                    return ProductValidation(is_valid=False, error="Product service unavailable")

                body = _body(product_response)
                if body.get("status") != "success":
                    return ProductValidation(is_valid=False, error="Product validation failed")
                product = body["data"]["product"]

                availability_response = await client.get(
                    f"{product_url}/availability",
                    params={"quantity": quantity},
                    timeout=self.validation_timeout,
                )
        except httpx.TimeoutException:
            logger.error(f"Product service timeout for product {product_id}")
            return ProductValidation(is_valid=False, error="Product service unavailable")
        except httpx.RequestError as e:
            logger.error(f"Product service unreachable for product {product_id}: {e}")
            return ProductValidation(is_valid=False, error="Product service unavailable")

        if availability_response.status_code == 404:
            return ProductValidation(is_valid=False, error="Product not found")
        if availability_response.is_error:
            return ProductValidation(is_valid=False, error="Product service unavailable")

        body = _body(availability_response)
        if body.get("status") != "success":
            return ProductValidation(is_valid=False, error="Product availability check failed")

        availability = body["data"]
        if not availability.get("canFulfill"):
            return ProductValidation(
                is_valid=False,
                product=product,
                availability=availability,
                error=f"Insufficient stock. Available: {availability.get('availableStock')}, Requested: {quantity}",
            )

        logger.info(f"Product validated: {product_id}")
        return ProductValidation(is_valid=True, product=product, availability=availability)

    async def initiate_payment(self, customer_id: str, order_id: str, amount: Decimal, currency: str,
                               product_id: str, correlation_id: Optional[str] = None) -> PaymentResult:
        payload = {
            "customerId": customer_id,
            "orderId": order_id,
            "amount": float(amount),
            "currency": currency,
            "productId": product_id,
        }
        logger.info(f"Initiating payment for order {order_id}")

        try:
            async with self._client(correlation_id) as client:
                response = await client.post(f"{self.payment_url}/payments", json=payload,
                                             timeout=self.payment_timeout)
        except httpx.TimeoutException:
            logger.error(f"Payment service timeout for order {order_id}")
            return PaymentResult(success=False, error="Payment service unavailable")
        except httpx.RequestError as e:
            logger.error(f"Payment service unreachable for order {order_id}: {e}")
            return PaymentResult(success=False, error="Payment service unavailable")

        body = _body(response)
        if response.is_error:
            logger.error(f"Payment initiation error for order {order_id}: {response.status_code} {body}")
            return PaymentResult(success=False, error=body.get("message") or "Payment service unavailable")
        if body.get("status") != "success":
            return PaymentResult(success=False, error="Payment initiation failed")

        payment = body["data"]["payment"]
        logger.info(f"Payment initiated for order {order_id}: payment {payment.get('id')}")
        return PaymentResult(success=True, payment=payment)

    async def deduct_stock(self, product_id: str, quantity: int, order_id: str,
                           correlation_id: Optional[str] = None) -> StockDeduction:
        url = f"{self.product_url}/products/{product_id}/deduct-stock"
        try:
            async with self._client(correlation_id) as client:
                response = await client.post(url, json={"quantity": quantity, "orderId": order_id},
                                             timeout=self.stock_timeout)
        except httpx.TimeoutException:
            logger.error(f"Stock deduction timeout for order {order_id}")
            return StockDeduction(success=False, error="Product service unavailable")
        except httpx.RequestError as e:
            logger.error(f"Product service unreachable for stock deduction, order {order_id}: {e}")
            return StockDeduction(success=False, error="Product service unavailable")

        body = _body(response)
        if response.is_error or body.get("status") != "success":
            return StockDeduction(success=False, error=body.get("message") or "Stock deduction failed")
        return StockDeduction(success=True, data=body["data"])
