from decimal import Decimal
from typing import List

import httpx
import pytest

from common.db import Database
from common.events import TransactionEvent
from customer_service.store import CustomerStore
from payment_service.publisher import PublishResult
from product_service.store import ProductStore

CUSTOMER_URL = "http://customers.test"
PRODUCT_URL = "http://products.test"
PAYMENT_URL = "http://payments.test"


@pytest.fixture
def database(tmp_path):
    # file-backed so every thread in a test sees the same tables
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    yield db
    db.dispose()


@pytest.fixture
def customer_store(database):
    store = CustomerStore(database)
    store.create_schema()
    return store


@pytest.fixture
def product_store(database):
    store = ProductStore(database)
    store.create_schema()
    return store


@pytest.fixture
def customer(customer_store):
    return customer_store.add(first_name="Ada", last_name="Okonkwo", email="ada.okonkwo@example.com")


@pytest.fixture
def inactive_customer(customer_store):
    return customer_store.add(
        first_name="Fatima", last_name="Mohammed", email="fatima.mohammed@example.com", is_active=False
    )


@pytest.fixture
def product(product_store):
    return product_store.add(
        name="Apple MacBook Air M3", price=Decimal("2100.00"), currency="USD", stock=10, sku="elec-mbam3-256"
    )


@pytest.fixture
def scarce_product(product_store):
    return product_store.add(
        name="Nike Air Max 270", price=Decimal("150.00"), currency="USD", stock=2, sku="FASH-NAM270-42"
    )


class FakePublisher:
    """Stands in for TransactionPublisher; records what would have been published."""

    def __init__(self, result: PublishResult = PublishResult(success=True)):
        self.result = result
        self.events: List[TransactionEvent] = []
        self.is_ready = True

    def publish(self, event: TransactionEvent) -> PublishResult:
        self.events.append(event)
        return self.result


@pytest.fixture
def publisher():
    return FakePublisher()


class ServiceRouter:
    """
    httpx handler that routes by host to in-process apps: the FastAPI services
    through ASGITransport, the Flask payment service through its test client.
    """

    def __init__(self, customer_app=None, product_app=None, payment_app=None):
        self.asgi = {}
        if customer_app is not None:
            self.asgi["customers.test"] = httpx.ASGITransport(app=customer_app)
        if product_app is not None:
            self.asgi["products.test"] = httpx.ASGITransport(app=product_app)
        self.payment = payment_app.test_client() if payment_app is not None else None
        self.requests: List[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host in self.asgi:
            return await self.asgi[host].handle_async_request(request)
        if host == "payments.test" and self.payment is not None:
            response = self.payment.open(
                request.url.raw_path.decode(),
                method=request.method,
                data=request.content,
                content_type="application/json",
            )
            return httpx.Response(response.status_code, content=response.data,
                                  headers={"content-type": "application/json"})
        raise httpx.ConnectError(f"no route to {host}", request=request)

    def paths(self, method: str = None) -> List[str]:
        return [r.url.path for r in self.requests if method is None or r.method == method]
