"""Tests for OrderService.create_order: pricing, coupons, loyalty and atomicity."""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import (
    BusinessRuleViolation,
    ConcurrencyConflict,
    CouponRejected,
    NotFound,
    ProductUnavailable,
)
from app.models.coupon import DiscountType
from app.models.coupon_usage import CouponUsage
from app.models.merchant import MerchantStatus
from app.models.order import Order, OrderStatus, PaymentStatus
from app.models.order_event import OrderEvent
from app.repositories.audit_log_repository import AuditLogRepository
from app.repositories.merchant_repository import MerchantRepository
from app.repositories.product_repository import ProductRepository
from app.schemas.merchant import MerchantUpdate
from app.schemas.order import OrderCreate, OrderLineItem
from app.schemas.product import ProductUpdate
from app.services.order_service import OrderService
from app.services.pricing_service import PricingEngine


@pytest.fixture
def service(db_session):
    engine = PricingEngine(
        tax_rate=Decimal("0.10"),
        service_fee=Decimal("2.00"),
        delivery_fee=Decimal("3.50"),
    )
    return OrderService(db_session, pricing=engine)


def order_data(merchant, *lines, **kwargs) -> OrderCreate:
    return OrderCreate(
        merchant_id=merchant.id,
        items=[OrderLineItem(product_id=p.id, quantity=q) for p, q in lines],
        **kwargs,
    )


class TestCreateOrder:
    def test_dine_in_scenario(self, service, merchant, product):
        order = service.create_order(order_data(merchant, (product, 2)))

        assert order.order_status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.subtotal == Decimal("20.00")
        assert order.tax_amount == Decimal("2.00")
        assert order.service_fee == Decimal("0.00")
        assert order.delivery_fee == Decimal("0.00")
        assert order.total == Decimal("22.00")
        assert order.commission_rate == Decimal("0.1000")
        assert order.commission_amount == Decimal("2.20")
        assert order.merchant_payout == Decimal("19.80")
        assert order.tip_amount == Decimal("0.00")
        assert order.version == 1

    def test_order_number_format(self, service, merchant, product):
        first = service.create_order(order_data(merchant, (product, 1)))
        second = service.create_order(order_data(merchant, (product, 1)))

        prefix, day, seq = first.order_number.split("-")
        assert prefix == "ORD"
        assert len(day) == 8
        assert seq == "0001"
        assert second.order_number.endswith("-0002")

    def test_order_number_continues_past_9999(
        self, service, merchant, product, make_order, db_session
    ):
        prefix = f"ORD-{datetime.now(UTC):%Y%m%d}-"
        seeded = make_order(merchant)
        seeded.order_number = f"{prefix}9999"
        db_session.commit()

        first = service.create_order(order_data(merchant, (product, 1)))
        second = service.create_order(order_data(merchant, (product, 1)))
        assert first.order_number == f"{prefix}10000"
        assert second.order_number == f"{prefix}10001"

    def test_order_number_collision_is_a_conflict(
        self, service, merchant, product, make_coupon, db_session, monkeypatch
    ):
        taken = service.create_order(order_data(merchant, (product, 1))).order_number
        coupon = make_coupon()
        # Another request committed the same number between read and insert
        monkeypatch.setattr(service.order_repo, "_generate_order_number", lambda: taken)

        with pytest.raises(ConcurrencyConflict):
            service.create_order(order_data(merchant, (product, 2), coupon_code=coupon.code))

        assert db_session.query(Order).count() == 1
        assert db_session.query(CouponUsage).count() == 0
        db_session.refresh(coupon)
        assert coupon.times_used == 0

    def test_items_are_snapshotted(self, service, merchant, product, db_session):
        order = service.create_order(order_data(merchant, (product, 2)))
        ProductRepository(db_session).update(
            product.id, ProductUpdate(price=Decimal("99.00"), name="Renamed")
        )

        db_session.refresh(order)
        assert order.items[0]["name"] == "Margherita"
        assert order.items[0]["unit_price"] == "10.00"
        assert order.total == Decimal("22.00")

    def test_commission_rate_copied_at_creation(self, service, merchant, product, db_session):
        order = service.create_order(order_data(merchant, (product, 2)))
        MerchantRepository(db_session).update(
            merchant.id, MerchantUpdate(commission_rate=Decimal("0.25"))
        )

        db_session.refresh(order)
        assert order.commission_rate == Decimal("0.1000")
        assert order.commission_amount + order.merchant_payout == order.total

    def test_delivery_with_free_delivery_coupon(self, service, merchant, product, make_coupon):
        coupon = make_coupon(discount_type=DiscountType.FREE_DELIVERY, discount_value="0")
        order = service.create_order(
            order_data(merchant, (product, 2), order_type="delivery", coupon_code=coupon.code)
        )
        assert order.delivery_fee == Decimal("0.00")
        assert order.service_fee == Decimal("2.00")
        assert order.discount_amount == Decimal("0.00")
        assert order.total == Decimal("24.00")
        assert order.coupon_id == coupon.id

    def test_coupon_applied_and_usage_recorded(
        self, service, merchant, make_product, make_coupon, db_session
    ):
        pizza = make_product(merchant, price="25.00")
        make_coupon(
            code="WELCOME20",
            max_discount_amount=Decimal("10"),
            min_order_amount=Decimal("15"),
        )
        order = service.create_order(
            order_data(merchant, (pizza, 2), coupon_code="welcome20", customer_id="cust-1")
        )

        assert order.coupon_code == "WELCOME20"
        assert order.discount_amount == Decimal("10.00")
        # 50.00 + 5.00 tax - 10.00
        assert order.total == Decimal("45.00")

        usage = db_session.query(CouponUsage).filter(CouponUsage.order_id == order.id).one()
        assert usage.discount_amount == Decimal("10.00")
        assert usage.user_id == "cust-1"

    def test_coupon_counters_updated(self, service, merchant, product, make_coupon, db_session):
        coupon = make_coupon(discount_type=DiscountType.FIXED_AMOUNT, discount_value="5")
        service.create_order(order_data(merchant, (product, 2), coupon_code=coupon.code))

        db_session.refresh(coupon)
        assert coupon.times_used == 1
        assert coupon.total_discount_given == Decimal("5.00")

    def test_loyalty_applies_before_coupon(self, service, merchant, make_product, make_coupon):
        item = make_product(merchant, price="100.00")
        coupon = make_coupon(discount_value="10")
        order = service.create_order(
            order_data(merchant, (item, 1), coupon_code=coupon.code, loyalty_points=2000)
        )
        # gold tier 10% of 100 = 10, coupon 10% of the remaining 90 = 9
        assert order.loyalty_discount_amount == Decimal("10.00")
        assert order.discount_amount == Decimal("9.00")
        assert order.total == Decimal("91.00")

    def test_coupon_minimum_checked_against_loyalty_reduced_subtotal(
        self, service, merchant, make_product, make_coupon
    ):
        item = make_product(merchant, price="100.00")
        coupon = make_coupon(min_order_amount=Decimal("95"))
        with pytest.raises(CouponRejected) as exc_info:
            service.create_order(
                order_data(merchant, (item, 1), coupon_code=coupon.code, loyalty_points=2000)
            )
        assert exc_info.value.reason == "minimum_not_met"

    def test_events_and_audit_recorded(self, service, merchant, product, db_session):
        order = service.create_order(order_data(merchant, (product, 1), customer_id="cust-9"))

        events = db_session.query(OrderEvent).filter(OrderEvent.order_id == order.id).all()
        assert [e.event_type for e in events] == ["order.created"]
        assert events[0].customer_id == "cust-9"
        assert events[0].payload["order_number"] == order.order_number

        audit = AuditLogRepository(db_session).get_by_resource("order", order.id)
        assert [a.action for a in audit] == ["created"]


class TestCreateOrderRejections:
    def test_unknown_merchant(self, service, merchant, product):
        data = order_data(merchant, (product, 1))
        data.merchant_id = uuid4()
        with pytest.raises(NotFound):
            service.create_order(data)

    def test_suspended_merchant(self, service, merchant, product, db_session):
        MerchantRepository(db_session).update(
            merchant.id, MerchantUpdate(status=MerchantStatus.SUSPENDED)
        )
        with pytest.raises(BusinessRuleViolation) as exc_info:
            service.create_order(order_data(merchant, (product, 1)))
        assert exc_info.value.code == "merchant_unavailable"

    def test_unavailable_product(self, service, merchant, make_product):
        available = make_product(merchant)
        sold_out = make_product(merchant, name="Calzone", is_available=False)
        with pytest.raises(ProductUnavailable) as exc_info:
            service.create_order(order_data(merchant, (available, 1), (sold_out, 1)))
        assert exc_info.value.product_id == sold_out.id

    def test_product_of_another_merchant(self, service, merchant, make_merchant, make_product):
        foreign = make_product(make_merchant())
        with pytest.raises(ProductUnavailable):
            service.create_order(order_data(merchant, (foreign, 1)))

    def test_missing_product(self, service, merchant, product):
        data = order_data(merchant, (product, 1))
        data.items.append(OrderLineItem(product_id=uuid4(), quantity=1))
        with pytest.raises(ProductUnavailable):
            service.create_order(data)

    def test_rejected_coupon_persists_nothing(self, service, merchant, product, make_coupon, db_session):
        coupon = make_coupon(min_order_amount=Decimal("15"))
        with pytest.raises(CouponRejected):
            # subtotal 10.00 is below the minimum
            service.create_order(order_data(merchant, (product, 1), coupon_code=coupon.code))

        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderEvent).count() == 0
        db_session.refresh(coupon)
        assert coupon.times_used == 0

    def test_fully_used_at_recording_rolls_back_order(
        self, service, merchant, product, make_coupon, db_session, monkeypatch
    ):
        coupon = make_coupon(max_uses=1)
        service.create_order(order_data(merchant, (product, 2), coupon_code=coupon.code))

        # A second request that validated before the first one recorded its usage
        from app.services.coupon_service import CouponValidation

        stale = CouponValidation(valid=True, coupon=coupon, discount_amount=Decimal("4.00"))
        monkeypatch.setattr(service.coupon_service, "validate", lambda *a, **kw: stale)

        with pytest.raises(CouponRejected) as exc_info:
            service.create_order(order_data(merchant, (product, 2), coupon_code=coupon.code))
        assert exc_info.value.reason == "fully_used"

        assert db_session.query(Order).count() == 1
        assert db_session.query(CouponUsage).count() == 1
        db_session.refresh(coupon)
        assert coupon.times_used == 1

    def test_unknown_coupon_code(self, service, merchant, product):
        with pytest.raises(CouponRejected) as exc_info:
            service.create_order(order_data(merchant, (product, 1), coupon_code="NOPE"))
        assert exc_info.value.reason == "invalid_code"


class TestOrderQueries:
    def test_get_order(self, service, merchant, product):
        order = service.create_order(order_data(merchant, (product, 1)))
        assert service.get_order(order.id).id == order.id
        assert service.get_order_by_number(order.order_number).id == order.id

    def test_get_missing(self, service):
        with pytest.raises(NotFound):
            service.get_order(uuid4())
        with pytest.raises(NotFound):
            service.get_order_by_number("ORD-19700101-0001")
