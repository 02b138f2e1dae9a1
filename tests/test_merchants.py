"""API tests for merchants and their products."""

from decimal import Decimal
from uuid import uuid4

from fastapi.testclient import TestClient


class TestMerchantsApi:
    def test_create(self, client: TestClient):
        response = client.post(
            "/v1/merchants/",
            json={"name": "Luigi's", "slug": "luigis", "commission_rate": "0.15"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["slug"] == "luigis"
        assert Decimal(data["commission_rate"]) == Decimal("0.15")
        assert data["status"] == "active"

    def test_default_commission_rate(self, client: TestClient):
        data = client.post("/v1/merchants/", json={"name": "Noodle Bar", "slug": "noodles"}).json()
        assert Decimal(data["commission_rate"]) == Decimal("0.10")

    def test_duplicate_slug(self, client: TestClient):
        client.post("/v1/merchants/", json={"name": "A", "slug": "same"})
        response = client.post("/v1/merchants/", json={"name": "B", "slug": "same"})
        assert response.status_code == 409

    def test_invalid_commission_rate(self, client: TestClient):
        response = client.post(
            "/v1/merchants/", json={"name": "A", "slug": "a", "commission_rate": "1.5"}
        )
        assert response.status_code == 422

    def test_invalid_slug(self, client: TestClient):
        response = client.post("/v1/merchants/", json={"name": "A", "slug": "Not A Slug"})
        assert response.status_code == 422

    def test_list_and_get(self, client: TestClient, merchant):
        assert [m["id"] for m in client.get("/v1/merchants/").json()] == [str(merchant.id)]
        assert client.get(f"/v1/merchants/{merchant.id}").json()["name"] == merchant.name

    def test_get_not_found(self, client: TestClient):
        assert client.get(f"/v1/merchants/{uuid4()}").status_code == 404

    def test_update(self, client: TestClient, merchant):
        response = client.patch(
            f"/v1/merchants/{merchant.id}",
            json={"commission_rate": "0.2", "status": "suspended"},
        )
        assert response.status_code == 200
        assert Decimal(response.json()["commission_rate"]) == Decimal("0.2")
        assert response.json()["status"] == "suspended"

    def test_update_not_found(self, client: TestClient):
        response = client.patch(f"/v1/merchants/{uuid4()}", json={"name": "Ghost"})
        assert response.status_code == 404


class TestProductsApi:
    def test_create(self, client: TestClient, merchant):
        response = client.post(
            f"/v1/merchants/{merchant.id}/products",
            json={"name": "Carbonara", "price": "12.50"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["merchant_id"] == str(merchant.id)
        assert Decimal(data["price"]) == Decimal("12.50")
        assert data["is_available"] is True

    def test_create_for_unknown_merchant(self, client: TestClient):
        response = client.post(
            f"/v1/merchants/{uuid4()}/products", json={"name": "Carbonara", "price": "12.50"}
        )
        assert response.status_code == 404

    def test_negative_price(self, client: TestClient, merchant):
        response = client.post(
            f"/v1/merchants/{merchant.id}/products", json={"name": "Free money", "price": "-1"}
        )
        assert response.status_code == 422

    def test_list_available_only(self, client: TestClient, merchant, make_product):
        make_product(merchant, name="Margherita")
        make_product(merchant, name="Calzone", is_available=False)

        all_items = client.get(f"/v1/merchants/{merchant.id}/products").json()
        assert len(all_items) == 2
        available = client.get(f"/v1/merchants/{merchant.id}/products?available_only=true").json()
        assert [p["name"] for p in available] == ["Margherita"]

    def test_list_for_unknown_merchant(self, client: TestClient):
        assert client.get(f"/v1/merchants/{uuid4()}/products").status_code == 404

    def test_get_and_update(self, client: TestClient, product):
        assert client.get(f"/v1/products/{product.id}").json()["name"] == "Margherita"
        response = client.patch(f"/v1/products/{product.id}", json={"is_available": False})
        assert response.status_code == 200
        assert response.json()["is_available"] is False

    def test_product_not_found(self, client: TestClient):
        assert client.get(f"/v1/products/{uuid4()}").status_code == 404
        assert client.patch(f"/v1/products/{uuid4()}", json={"name": "X"}).status_code == 404
