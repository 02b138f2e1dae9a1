"""Shared test fixtures for all test modules."""

import contextlib
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.core import database as db_module
from app.core.database import Base, get_db
from app.models.coupon import DiscountType
from app.repositories.coupon_repository import CouponRepository
from app.repositories.merchant_repository import MerchantRepository
from app.repositories.product_repository import ProductRepository
from app.schemas.coupon import CouponCreate
from app.schemas.merchant import MerchantCreate
from app.schemas.product import ProductCreate

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    # Patch module-level engine and session factory
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    # Restore originals
    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct repository and service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def client():
    """Create test client."""
    from app.main import app

    return TestClient(app)


@pytest.fixture
def make_merchant(db_session):
    """Factory creating merchants with a unique slug."""

    def _make(commission_rate: str = "0.10", name: str = "Test Bistro"):
        return MerchantRepository(db_session).create(
            MerchantCreate(
                name=name,
                slug=f"bistro-{uuid4().hex[:8]}",
                commission_rate=Decimal(commission_rate),
            )
        )

    return _make


@pytest.fixture
def merchant(make_merchant):
    return make_merchant()


@pytest.fixture
def make_product(db_session):
    def _make(merchant, price: str = "10.00", name: str = "Margherita", is_available: bool = True):
        return ProductRepository(db_session).create(
            merchant.id,
            ProductCreate(name=name, price=Decimal(price), is_available=is_available),
        )

    return _make


@pytest.fixture
def product(make_product, merchant):
    return make_product(merchant)


@pytest.fixture
def make_coupon(db_session):
    """Factory creating coupons valid from yesterday until next week by default."""

    def _make(
        code: str | None = None,
        discount_type: DiscountType = DiscountType.PERCENTAGE,
        discount_value: str = "20",
        **overrides,
    ):
        now = datetime.now(UTC)
        fields = {
            "code": code or f"TEST{uuid4().hex[:6].upper()}",
            "discount_type": discount_type,
            "discount_value": Decimal(discount_value),
            "valid_from": now - timedelta(days=1),
            "valid_until": now + timedelta(days=7),
        }
        fields.update(overrides)
        return CouponRepository(db_session).create(CouponCreate(**fields))

    return _make


@pytest.fixture
def make_order(db_session):
    """Factory inserting a priced order directly, bypassing the order service."""
    from app.repositories.order_repository import OrderRepository

    def _make(merchant, order_type: str = "dine_in", total: str = "22.00", **overrides):
        fields = {
            "merchant_id": merchant.id,
            "order_type": order_type,
            "items": [],
            "subtotal": Decimal("20.00"),
            "tax_amount": Decimal("2.00"),
            "total": Decimal(total),
            "commission_rate": Decimal("0.10"),
            "commission_amount": Decimal("2.20"),
            "merchant_payout": Decimal("19.80"),
        }
        fields.update(overrides)
        statuses = {
            key: fields.pop(key) for key in ("order_status", "payment_status") if key in fields
        }
        order = OrderRepository(db_session).create(**fields)
        for key, value in statuses.items():
            setattr(order, key, value)
        db_session.commit()
        db_session.refresh(order)
        return order

    return _make
