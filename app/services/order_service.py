"""Order creation: resolve products and discounts, price, persist, record usage.

Everything in ``create_order`` happens in one transaction. Repositories called
from here only flush, so a failure at any step rolls back the order row, the
coupon usage and the counters together.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    BusinessRuleViolation,
    ConcurrencyConflict,
    NotFound,
    ProductUnavailable,
)
from app.core.money import ZERO
from app.models.merchant import Merchant, MerchantStatus
from app.models.order import Order, OrderType
from app.repositories.merchant_repository import MerchantRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.product_repository import ProductRepository
from app.schemas.order import OrderCreate, OrderLineItem
from app.services.audit_service import AuditService
from app.services.coupon_service import CouponService
from app.services.notification_service import NotificationService
from app.services.pricing_service import (
    AppliedDiscount,
    PricingEngine,
    PricingItem,
    loyalty_discount,
)

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, db: Session, pricing: PricingEngine | None = None):
        self.db = db
        self.pricing = pricing or PricingEngine()
        self.order_repo = OrderRepository(db)
        self.merchant_repo = MerchantRepository(db)
        self.product_repo = ProductRepository(db)
        self.coupon_service = CouponService(db)
        self.audit_service = AuditService(db)
        self.notifications = NotificationService(db)

    def create_order(self, data: OrderCreate) -> Order:
        """Price and persist a new order in ``pending`` state.

        Loyalty applies to the subtotal first; a coupon is then validated and
        computed against the loyalty-reduced subtotal.

        Raises:
            NotFound: the merchant does not exist.
            BusinessRuleViolation: ``merchant_unavailable`` when the merchant is suspended.
            ProductUnavailable: an item is missing, unavailable or sold by another merchant.
            CouponRejected: the coupon fails an eligibility check.
            ConcurrencyConflict: the coupon usage or the order number was taken
                concurrently; the caller may retry.
        """
        try:
            merchant = self._get_active_merchant(data.merchant_id)
            items = self._resolve_items(merchant, data.items)
            order_type = OrderType(data.order_type)

            subtotal = self.pricing.subtotal(items)
            loyalty_amount = loyalty_discount(subtotal, data.loyalty_points)

            discount: AppliedDiscount | None = None
            if data.coupon_code:
                discount = self.coupon_service.resolve(
                    data.coupon_code,
                    max(ZERO, subtotal - loyalty_amount),
                    merchant_id=merchant.id,  # type: ignore[arg-type]
                    user_id=data.customer_id,
                )

            breakdown = self.pricing.price(
                items,
                order_type,
                merchant.commission_rate,  # type: ignore[arg-type]
                discount=discount,
                loyalty_discount_amount=loyalty_amount,
            )

            try:
                order = self.order_repo.create(
                    merchant_id=merchant.id,
                    customer_id=data.customer_id,
                    customer_name=data.customer_name,
                    customer_email=data.customer_email,
                    customer_notes=data.customer_notes,
                    order_type=order_type.value,
                    items=breakdown.items,
                    subtotal=breakdown.subtotal,
                    loyalty_discount_amount=breakdown.loyalty_discount_amount,
                    discount_amount=breakdown.discount_amount,
                    tax_amount=breakdown.tax_amount,
                    service_fee=breakdown.service_fee,
                    delivery_fee=breakdown.delivery_fee,
                    tip_amount=ZERO,
                    total=breakdown.total,
                    coupon_id=discount.coupon_id if discount else None,
                    coupon_code=discount.code if discount else None,
                    commission_rate=breakdown.commission_rate,
                    commission_amount=breakdown.commission_amount,
                    merchant_payout=breakdown.merchant_payout,
                )
            except IntegrityError as e:
                logger.warning("Order number collision for merchant %s", merchant.slug)
                raise ConcurrencyConflict(
                    "Another order took the same order number; retry the request"
                ) from e

            if discount is not None:
                self.coupon_service.record_usage(
                    discount.coupon_id,
                    order.id,  # type: ignore[arg-type]
                    discount.amount,
                    user_id=data.customer_id,
                )

            self.notifications.emit(
                "order.created",
                order,
                {"total": str(breakdown.total), "order_type": order_type.value},
            )
            self.audit_service.log_create(
                resource_type="order",
                resource_id=order.id,  # type: ignore[arg-type]
                merchant_id=merchant.id,  # type: ignore[arg-type]
                actor_type="customer" if data.customer_id else "system",
                actor_id=data.customer_id,
                data={
                    "order_number": order.order_number,
                    "total": str(breakdown.total),
                    "coupon_code": order.coupon_code,
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info(
            "Order %s created for merchant %s (total %s)",
            order.order_number,
            merchant.slug,
            order.total,
        )
        return order

    def get_order(self, order_id: UUID) -> Order:
        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        return order

    def get_order_by_number(self, order_number: str) -> Order:
        order = self.order_repo.get_by_order_number(order_number)
        if not order:
            raise NotFound(f"Order {order_number} not found")
        return order

    def _get_active_merchant(self, merchant_id: UUID) -> Merchant:
        merchant = self.merchant_repo.get_by_id(merchant_id)
        if not merchant:
            raise NotFound(f"Merchant {merchant_id} not found")
        if merchant.status != MerchantStatus.ACTIVE.value:
            logger.warning("Order rejected: merchant %s is %s", merchant.slug, merchant.status)
            raise BusinessRuleViolation(
                "Merchant is not accepting orders", code="merchant_unavailable"
            )
        return merchant

    def _resolve_items(self, merchant: Merchant, lines: list[OrderLineItem]) -> list[PricingItem]:
        """Copy each product's current name and price onto its line."""
        products = self.product_repo.get_by_ids([line.product_id for line in lines])
        items = []
        for line in lines:
            product = products.get(line.product_id)
            if product is None or product.merchant_id != merchant.id:
                raise ProductUnavailable(line.product_id)
            items.append(
                PricingItem(
                    product_id=line.product_id,
                    name=str(product.name),
                    unit_price=product.price,  # type: ignore[arg-type]
                    quantity=line.quantity,
                    is_available=bool(product.is_available),
                    options=line.options,
                    special_instructions=line.special_instructions,
                )
            )
        return items
