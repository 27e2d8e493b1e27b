import pytest
from fastapi.testclient import TestClient

from customer_service.main import create_app


@pytest.fixture
def client(database, customer_store):
    with TestClient(create_app(database, seed=False)) as c:
        yield c


def test_get_active_customer(client, customer):
    r = client.get(f"/customers/{customer.id}")

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "success"
    assert body["data"]["customer"]["email"] == "ada.okonkwo@example.com"
    assert body["data"]["customer"]["fullName"] == "Ada Okonkwo"


def test_unknown_customer_is_404(client):
    r = client.get("/customers/does-not-exist")

    assert r.status_code == 404
    assert r.json() == {"status": "fail", "message": "Customer not found"}


def test_inactive_customer_is_403(client, inactive_customer):
    r = client.get(f"/customers/{inactive_customer.id}")

    assert r.status_code == 403
    assert r.json()["message"] == "Customer account is inactive"


def test_list_filters_on_active_flag(client, customer, inactive_customer):
    active = client.get("/customers", params={"isActive": "true"}).json()
    everyone = client.get("/customers").json()

    assert active["results"] == 1
    assert active["data"]["customers"][0]["id"] == customer.id
    assert everyone["results"] == 2


def test_correlation_id_is_echoed_or_generated(client, customer):
    echoed = client.get(f"/customers/{customer.id}", headers={"X-Correlation-Id": "abc-123"})
    generated = client.get(f"/customers/{customer.id}")

    assert echoed.headers["X-Correlation-Id"] == "abc-123"
    assert generated.headers["X-Correlation-Id"]


def test_seed_only_fills_an_empty_table(database, customer_store):
    assert customer_store.seed() == 3
    assert customer_store.seed() == 0
    inactive = customer_store.list(is_active=False)
    assert [c.first_name for c in inactive] == ["Fatima"]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["database"] == "connected"
