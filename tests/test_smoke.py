"""Minimal smoke tests.

Proves the app boots and an order can travel from placement to completion
through the public API.
"""

from decimal import Decimal

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.main import app


def test_app_starts():
    """The FastAPI app object can be imported and is a FastAPI instance."""
    assert isinstance(app, FastAPI)


def test_health_endpoint(client: TestClient):
    """GET / returns 200 with app info."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["app"] == "Tavola Orders"
    assert "version" in data
    assert data["status"] == "running"


def test_cors_preflight(client: TestClient):
    response = client.options(
        "/v1/orders/",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.status_code == 200


def test_order_end_to_end(client: TestClient):
    merchant = client.post(
        "/v1/merchants/", json={"name": "Smoke Pizzeria", "slug": "smoke-pizzeria"}
    ).json()
    product = client.post(
        f"/v1/merchants/{merchant['id']}/products",
        json={"name": "Diavola", "price": "11.00"},
    ).json()

    order = client.post(
        "/v1/orders/",
        json={
            "merchant_id": merchant["id"],
            "order_type": "takeaway",
            "items": [{"product_id": product["id"], "quantity": 1}],
        },
    ).json()
    # 11.00 + 1.10 tax + 2.00 service fee
    assert Decimal(order["total"]) == Decimal("14.10")

    client.post("/v1/payments/events", json={"order_id": order["id"], "status": "paid"})
    for status in ("preparing", "ready", "completed"):
        response = client.put(f"/v1/orders/{order['id']}/status", json={"status": status})
        assert response.status_code == 200

    final = client.get(f"/v1/orders/{order['id']}").json()
    assert final["order_status"] == "completed"
    assert final["payment_status"] == "paid"
    assert final["completed_at"] is not None
