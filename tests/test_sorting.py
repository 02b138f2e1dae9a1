"""Tests for column sorting across API endpoints and the sorting utility."""

from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.sorting import apply_order_by, parse_order_by
from app.models.order import Order
from app.models.product import Product

# ---------------------------------------------------------------------------
# Unit tests for the order_by parser
# ---------------------------------------------------------------------------


class TestParseOrderBy:
    def test_none(self):
        assert parse_order_by(Order, None) == []

    def test_single_field_defaults_to_asc(self):
        assert parse_order_by(Order, "total") == [("total", "asc")]

    def test_multiple_fields(self):
        assert parse_order_by(Order, "order_status:asc, total:desc") == [
            ("order_status", "asc"),
            ("total", "desc"),
        ]

    def test_unknown_field_is_dropped(self):
        assert parse_order_by(Order, "nonexistent:asc,total:desc") == [("total", "desc")]

    def test_non_column_attribute_is_dropped(self):
        assert parse_order_by(Order, "metadata:asc") == []

    def test_invalid_direction_uses_default(self):
        assert parse_order_by(Order, "total:sideways") == [("total", "desc")]

    def test_repeated_field_kept_once(self):
        assert parse_order_by(Order, "total:asc,total:desc") == [("total", "asc")]


# ---------------------------------------------------------------------------
# Query tests
# ---------------------------------------------------------------------------


class TestApplyOrderBy:
    def test_sort_by_price(self, db_session: Session, merchant, make_product):
        for name, price in (("B", "12.00"), ("A", "8.00"), ("C", "15.00")):
            make_product(merchant, name=name, price=price)

        query = db_session.query(Product)
        asc_names = [p.name for p in apply_order_by(query, Product, "price:asc").all()]
        desc_names = [p.name for p in apply_order_by(query, Product, "price:desc").all()]
        assert asc_names == ["A", "B", "C"]
        assert desc_names == ["C", "B", "A"]

    def test_secondary_key(self, db_session: Session, merchant, make_product):
        make_product(merchant, name="B", price="10.00")
        make_product(merchant, name="A", price="10.00")
        make_product(merchant, name="C", price="5.00")

        query = apply_order_by(db_session.query(Product), Product, "price:desc,name:asc")
        assert [p.name for p in query.all()] == ["A", "B", "C"]

    def test_unknown_field_falls_back_to_default(
        self, db_session: Session, merchant, make_product
    ):
        make_product(merchant, name="first")
        make_product(merchant, name="second")
        query = apply_order_by(db_session.query(Product), Product, "bogus:asc")
        assert len(query.all()) == 2


# ---------------------------------------------------------------------------
# Endpoint tests
# ---------------------------------------------------------------------------


class TestEndpointSorting:
    def test_orders_sorted_by_total(self, client: TestClient, merchant, make_order):
        for total in ("30.00", "10.00", "20.00"):
            make_order(merchant, total=total)

        data = client.get("/v1/orders/?order_by=total:asc").json()
        assert [Decimal(o["total"]) for o in data] == [
            Decimal("10.00"),
            Decimal("20.00"),
            Decimal("30.00"),
        ]

    def test_products_sorted_by_name(self, client: TestClient, merchant, make_product):
        for name in ("Tiramisu", "Bruschetta", "Lasagne"):
            make_product(merchant, name=name)

        data = client.get(f"/v1/merchants/{merchant.id}/products?order_by=name:asc").json()
        assert [p["name"] for p in data] == ["Bruschetta", "Lasagne", "Tiramisu"]
