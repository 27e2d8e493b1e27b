import httpx
import pytest

from order_service.client import ServiceClient
from tests.conftest import CUSTOMER_URL, PAYMENT_URL, PRODUCT_URL

CUSTOMER = {"id": "c1", "email": "ada@example.com", "fullName": "Ada Okonkwo"}
PRODUCT = {"id": "p1", "name": "Nike Air Max 270", "sku": "FASH-NAM270-42", "price": 150.0, "currency": "USD"}


def make_client(handler) -> ServiceClient:
    return ServiceClient(
        customer_url=CUSTOMER_URL,
        product_url=PRODUCT_URL,
        payment_url=PAYMENT_URL,
        transport=httpx.MockTransport(handler),
    )


def success(data) -> httpx.Response:
    return httpx.Response(200, json={"status": "success", "data": data})


@pytest.mark.asyncio
async def test_customer_valid_and_correlation_id_forwarded():
    seen = {}

    def handler(request):
        seen["correlation"] = request.headers.get("X-Correlation-Id")
        return success({"customer": CUSTOMER})

    result = await make_client(handler).validate_customer("c1", correlation_id="corr-1")

    assert result.is_valid
    assert result.customer == CUSTOMER
    assert seen["correlation"] == "corr-1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response, reason",
    [
        (httpx.Response(404, json={"status": "fail", "message": "Customer not found"}), "Customer not found"),
        (httpx.Response(403, json={"status": "fail"}), "Customer account is inactive"),
        (httpx.Response(500, text="boom"), "Customer service unavailable"),
        (httpx.Response(200, json={"status": "fail"}), "Customer validation failed"),
    ],
)
async def test_customer_rejections(response, reason):
    result = await make_client(lambda request: response).validate_customer("c1")

    assert not result.is_valid
    assert result.error == reason


@pytest.mark.asyncio
async def test_customer_service_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = await make_client(handler).validate_customer("c1")

    assert result.error == "Customer service unavailable"


@pytest.mark.asyncio
async def test_customer_service_unreachable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    result = await make_client(handler).validate_customer("c1")

    assert result.error == "Customer service unavailable"


@pytest.mark.asyncio
async def test_product_valid_checks_availability_for_quantity():
    seen = []

    def handler(request):
        seen.append(request.url)
        if request.url.path.endswith("/availability"):
            return success({"canFulfill": True, "availableStock": 2, "requestedQuantity": 2})
        return success({"product": PRODUCT})

    result = await make_client(handler).validate_product("p1", 2)

    assert result.is_valid
    assert result.product == PRODUCT
    assert seen[1].params["quantity"] == "2"


@pytest.mark.asyncio
async def test_product_insufficient_stock_reason():
    def handler(request):
        if request.url.path.endswith("/availability"):
            return success({"canFulfill": False, "availableStock": 2, "requestedQuantity": 5})
        return success({"product": PRODUCT})

    result = await make_client(handler).validate_product("p1", 5)

    assert not result.is_valid
    assert result.error == "Insufficient stock. Available: 2, Requested: 5"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "product_response, availability_response, reason",
    [
        (httpx.Response(404, json={}), None, "Product not found"),
        (httpx.Response(503, json={}), None, "Product service unavailable"),
        (httpx.Response(200, json={"status": "fail"}), None, "Product validation failed"),
        (success({"product": PRODUCT}), httpx.Response(200, json={"status": "fail"}),
         "Product availability check failed"),
        (success({"product": PRODUCT}), httpx.Response(404, json={}), "Product not found"),
    ],
)
async def test_product_rejections(product_response, availability_response, reason):
    def handler(request):
        if request.url.path.endswith("/availability"):
            return availability_response
        return product_response

    result = await make_client(handler).validate_product("p1", 1)

    assert result.error == reason


@pytest.mark.asyncio
async def test_product_service_timeout():
    def handler(request):
        raise httpx.ConnectTimeout("slow", request=request)

    result = await make_client(handler).validate_product("p1", 1)

    assert result.error == "Product service unavailable"


@pytest.mark.asyncio
async def test_payment_success_sends_order_reference_and_total():
    seen = {}

    def handler(request):
        seen["body"] = request.read()
        return success({"payment": {"id": "pay-1", "paymentStatus": "completed"}})

    result = await make_client(handler).initiate_payment("c1", "ORD-1", 450, "USD", "p1")

    assert result.success
    assert result.payment["id"] == "pay-1"
    assert b'"orderId":"ORD-1"' in seen["body"].replace(b" ", b"")
    assert b'"amount":450.0' in seen["body"].replace(b" ", b"")


@pytest.mark.asyncio
async def test_payment_failure_surfaces_service_message():
    response = httpx.Response(400, json={"status": "fail", "message": "Payment processing failed"})

    result = await make_client(lambda request: response).initiate_payment("c1", "ORD-1", 10, "NGN", "p1")

    assert not result.success
    assert result.error == "Payment processing failed"


@pytest.mark.asyncio
async def test_payment_timeout_uses_payment_budget():
    seen = {}

    def handler(request):
        seen["timeout"] = request.extensions["timeout"]
        raise httpx.ReadTimeout("slow", request=request)

    client = make_client(handler)
    result = await client.initiate_payment("c1", "ORD-1", 10, "NGN", "p1")

    assert result.error == "Payment service unavailable"
    assert seen["timeout"]["read"] == client.payment_timeout == 10.0


@pytest.mark.asyncio
async def test_deduct_stock_failure_message():
    response = httpx.Response(400, json={"status": "fail", "message": "Insufficient stock. Available: 0, Requested: 1"})

    result = await make_client(lambda request: response).deduct_stock("p1", 1, "ORD-1")

    assert not result.success
    assert result.error == "Insufficient stock. Available: 0, Requested: 1"


@pytest.mark.asyncio
async def test_deduct_stock_success():
    result = await make_client(lambda request: success({"newStock": 7})).deduct_stock("p1", 3, "ORD-1")

    assert result.success
    assert result.data == {"newStock": 7}
