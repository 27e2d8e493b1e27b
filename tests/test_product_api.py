import pytest
from fastapi.testclient import TestClient

from product_service.main import create_app


@pytest.fixture
def client(database, product_store):
    with TestClient(create_app(database, seed=False)) as c:
        yield c


def test_get_product(client, product):
    r = client.get(f"/products/{product.id}")

    assert r.status_code == 200
    data = r.json()["data"]["product"]
    assert data["sku"] == "ELEC-MBAM3-256"
    assert data["price"] == 2100.0
    assert data["currency"] == "USD"
    assert data["stockStatus"] == "low_stock"


def test_unknown_product_is_404(client):
    r = client.get("/products/nope")
    assert r.status_code == 404
    assert r.json()["message"] == "Product not found"


def test_availability(client, scarce_product):
    ok = client.get(f"/products/{scarce_product.id}/availability", params={"quantity": 2}).json()
    short = client.get(f"/products/{scarce_product.id}/availability", params={"quantity": 5}).json()

    assert ok["data"]["canFulfill"] is True
    assert short["data"]["canFulfill"] is False
    assert short["data"]["availableStock"] == 2
    assert short["data"]["requestedQuantity"] == 5


def test_availability_rejects_non_positive_quantity(client, product):
    r = client.get(f"/products/{product.id}/availability", params={"quantity": 0})

    assert r.status_code == 400
    assert r.json()["message"] == "Validation Error"


def test_deduct_stock(client, product):
    r = client.post(f"/products/{product.id}/deduct-stock", json={"quantity": 3, "orderId": "ORD-1"})

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["previousStock"] == 10
    assert data["newStock"] == 7
    assert data["quantityDeducted"] == 3


def test_deduct_more_than_available(client, scarce_product):
    r = client.post(f"/products/{scarce_product.id}/deduct-stock", json={"quantity": 5, "orderId": "ORD-1"})

    assert r.status_code == 400
    assert r.json() == {"status": "fail", "message": "Insufficient stock. Available: 2, Requested: 5"}


def test_deduct_unknown_product(client):
    r = client.post("/products/nope/deduct-stock", json={"quantity": 1, "orderId": "ORD-1"})
    assert r.status_code == 404


def test_deduct_requires_order_id(client, product):
    r = client.post(f"/products/{product.id}/deduct-stock", json={"quantity": 1})

    assert r.status_code == 400
    assert any("orderId" in e for e in r.json()["errors"])


def test_restore_stock(client, scarce_product):
    client.post(f"/products/{scarce_product.id}/deduct-stock", json={"quantity": 2, "orderId": "ORD-1"})
    r = client.post(
        f"/products/{scarce_product.id}/restore-stock",
        json={"quantity": 2, "orderId": "ORD-1", "reason": "cancelled"},
    )

    assert r.status_code == 200
    assert r.json()["data"]["newStock"] == 2
    # restored but still switched off until someone re-enables it
    assert client.get(f"/products/{scarce_product.id}").json()["data"]["product"]["isAvailable"] is False


def test_list_in_stock_only(client, product, scarce_product):
    client.post(f"/products/{scarce_product.id}/deduct-stock", json={"quantity": 2, "orderId": "ORD-1"})

    body = client.get("/products", params={"inStock": "true"}).json()

    assert body["results"] == 1
    assert body["data"]["products"][0]["id"] == product.id
